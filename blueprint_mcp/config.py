#!/usr/bin/env python3
# CUI // SP-CTI
"""Server configuration for the blueprint MCP server.

Configuration is assembled once at process start and passed explicitly to
every component that needs it. Nothing outside this module reads the
process environment.

Precedence (lowest to highest):
    1. Built-in defaults
    2. args/blueprint_server_config.yaml
    3. Environment variables (WORKSPACE_ROOT, LOG_LEVEL, MCP_SERVER_NAME, ...)
    4. Explicit overrides (CLI flags)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from blueprint_mcp.resilience.errors import ConfigurationError

BASE_DIR = Path(__file__).resolve().parent.parent
CONFIG_PATH = BASE_DIR / "args" / "blueprint_server_config.yaml"
CATALOG_PATH = BASE_DIR / "args" / "blueprint_catalog.yaml"

PROVIDER_DIRS = ("aws", "azure", "gcp")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = logging.getLogger("blueprints.config")


@dataclass(frozen=True)
class ServerConfig:
    """Immutable process configuration."""

    server_name: str = "infra-blueprints"
    server_version: str = "1.0.0"
    workspace_root: Path = BASE_DIR
    catalog_path: Path = CATALOG_PATH
    log_level: str = "INFO"
    http_host: str = "127.0.0.1"
    http_port: int = 3000
    session_ttl_seconds: int = 1800
    # Deployment context merged into every wide event
    environment: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "server_name": self.server_name,
            "server_version": self.server_version,
            "workspace_root": str(self.workspace_root),
            "catalog_path": str(self.catalog_path),
            "log_level": self.log_level,
            "http_host": self.http_host,
            "http_port": self.http_port,
            "session_ttl_seconds": self.session_ttl_seconds,
            "environment": dict(self.environment),
        }


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    """Load server config from YAML. Missing file yields an empty dict."""
    if not config_path.exists():
        logger.debug("Config file %s not found, using defaults", config_path)
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a mapping", config_key="root"
        )
    return data


def discover_workspace_root(candidates=None) -> Path:
    """Return the first candidate directory that holds aws/, azure/ and gcp/.

    Falls back to the repository root when none qualifies.
    """
    if candidates is None:
        candidates = [BASE_DIR, BASE_DIR.parent, Path.cwd()]
    for candidate in candidates:
        candidate = Path(candidate)
        if all((candidate / d).is_dir() for d in PROVIDER_DIRS):
            return candidate.resolve()
    return BASE_DIR


def _environment_context(environ: Mapping[str, str]) -> Dict[str, str]:
    """Deployment context captured once at start-up."""
    return {
        "commit_hash": environ.get("COMMIT_SHA") or environ.get("GIT_COMMIT") or "unknown",
        "environment": environ.get("ENVIRONMENT", "development"),
        "region": environ.get("REGION") or environ.get("AWS_REGION") or "local",
    }


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ServerConfig:
    """Build the ServerConfig from defaults, YAML, environment and overrides.

    Args:
        config_path: YAML file to read (default args/blueprint_server_config.yaml).
        overrides: Explicit values that win over everything else (None values ignored).
        environ: Environment mapping (default os.environ).

    Raises:
        ConfigurationError: Invalid log level, port, or workspace root.
    """
    environ = os.environ if environ is None else environ
    raw = _load_yaml(Path(config_path) if config_path else CONFIG_PATH)

    server = raw.get("server", {}) or {}
    workspace = raw.get("workspace", {}) or {}
    logging_cfg = raw.get("logging", {}) or {}
    http = raw.get("http", {}) or {}

    values: Dict[str, Any] = {
        "server_name": server.get("name", ServerConfig.server_name),
        "server_version": str(server.get("version", ServerConfig.server_version)),
        "workspace_root": workspace.get("root"),
        "catalog_path": raw.get("catalog", {}).get("path") if raw.get("catalog") else None,
        "log_level": logging_cfg.get("level", ServerConfig.log_level),
        "http_host": http.get("host", ServerConfig.http_host),
        "http_port": http.get("port", ServerConfig.http_port),
        "session_ttl_seconds": http.get("session_ttl_seconds", ServerConfig.session_ttl_seconds),
    }

    env_map = {
        "WORKSPACE_ROOT": "workspace_root",
        "LOG_LEVEL": "log_level",
        "MCP_SERVER_NAME": "server_name",
        "MCP_SERVER_VERSION": "server_version",
        "BLUEPRINT_CATALOG_PATH": "catalog_path",
        "PORT": "http_port",
    }
    for env_key, field_name in env_map.items():
        if environ.get(env_key):
            values[field_name] = environ[env_key]

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    log_level = str(values["log_level"]).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid log level: {values['log_level']}", config_key="logging.level"
        )

    try:
        http_port = int(values["http_port"])
        session_ttl = int(values["session_ttl_seconds"])
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"HTTP port and session TTL must be integers, got "
            f"{values['http_port']!r}/{values['session_ttl_seconds']!r}",
            config_key="http",
        )

    if values["workspace_root"]:
        workspace_root = Path(values["workspace_root"]).expanduser()
        if not workspace_root.is_dir():
            raise ConfigurationError(
                f"Workspace root does not exist: {workspace_root}",
                config_key="workspace.root",
            )
        workspace_root = workspace_root.resolve()
    else:
        workspace_root = discover_workspace_root()

    catalog_path = Path(values["catalog_path"]) if values["catalog_path"] else CATALOG_PATH
    if not catalog_path.is_absolute():
        catalog_path = BASE_DIR / catalog_path

    return ServerConfig(
        server_name=str(values["server_name"]),
        server_version=str(values["server_version"]),
        workspace_root=workspace_root,
        catalog_path=catalog_path,
        log_level=log_level,
        http_host=str(values["http_host"]),
        http_port=http_port,
        session_ttl_seconds=session_ttl,
        environment=_environment_context(environ),
    )
