#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint file retrieval.

Resolves blueprints://{provider}/{blueprintName}/{relativePath} URIs against
the workspace layout {workspaceRoot}/{provider}/{blueprintName}/... and reads
the file through the path sandbox. Every call re-validates and re-reads;
nothing is cached and nothing is written.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from blueprint_mcp.catalog.blueprint_catalog import BLUEPRINT_NAME_RE, BlueprintCatalog
from blueprint_mcp.catalog.cloud_provider import get_cloud_provider
from blueprint_mcp.catalog.models import CloudProvider, FileContent
from blueprint_mcp.resilience.errors import (
    BlueprintFileNotFoundError,
    InvalidUriError,
    ValidationError,
)
from blueprint_mcp.security.path_sandbox import check_path_syntax, resolve_workspace_path

logger = logging.getLogger("blueprints.retrieval")

URI_SCHEME = "blueprints://"
URI_RE = re.compile(r"^blueprints://([^/]+)/([^/]+)/(.+)$")

MIME_TYPES = {
    ".md": "text/markdown",
    ".tf": "text/x-hcl",
    ".hcl": "text/x-hcl",
    ".json": "application/json",
    ".sh": "text/x-shellscript",
    ".sql": "text/x-sql",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".js": "text/javascript",
    ".ts": "text/typescript",
    ".graphql": "text/x-graphql",
}
DEFAULT_MIME_TYPE = "text/plain"

# Files worth exposing as MCP resources
RELEVANT_EXTENSIONS = frozenset(MIME_TYPES)
KEY_FILES = ("README.md", "environments/dev/main.tf")


@dataclass(frozen=True)
class BlueprintFileURI:
    """Parsed blueprints:// URI."""

    provider: CloudProvider
    blueprint_name: str
    relative_path: str

    @property
    def workspace_path(self) -> str:
        """Path relative to the workspace root."""
        return f"{self.provider.value}/{self.blueprint_name}/{self.relative_path}"

    def __str__(self) -> str:
        return f"{URI_SCHEME}{self.workspace_path}"


def get_mime_type(filename: str) -> str:
    """MIME type from file extension, text/plain when unknown."""
    ext = os.path.splitext(filename)[1].lower()
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def parse_blueprint_uri(uri: str) -> BlueprintFileURI:
    """Split a blueprints:// URI into provider, blueprint name and path.

    Raises:
        InvalidUriError: Wrong scheme, missing segments, or unknown provider.
        ValidationError: Blueprint name is not lowercase-kebab.
    """
    if not isinstance(uri, str):
        raise InvalidUriError(repr(uri))
    match = URI_RE.match(uri)
    if not match:
        raise InvalidUriError(uri)

    provider_raw, blueprint_name, relative_path = match.groups()
    provider = CloudProvider.parse(provider_raw)
    if provider is None or provider.value != provider_raw:
        raise InvalidUriError(uri)
    if not BLUEPRINT_NAME_RE.match(blueprint_name):
        raise ValidationError(
            "Blueprint name contains invalid characters. "
            "Only lowercase letters, numbers, and hyphens allowed"
        )
    return BlueprintFileURI(provider, blueprint_name, relative_path)


class BlueprintFileService:
    """Reads blueprint files from a workspace root through the sandbox."""

    def __init__(self, workspace_root: Path, catalog: Optional[BlueprintCatalog] = None):
        self.workspace_root = Path(workspace_root)
        self._catalog = catalog

    def build_uri(self, blueprint_name: str, relative_path: str) -> str:
        """Build the URI for a file inside a blueprint.

        Provider comes from the name prefix, then the catalog origin, then aws.
        """
        provider = get_cloud_provider(blueprint_name)
        if provider is None and self._catalog is not None:
            blueprint = self._catalog.get_by_name(blueprint_name)
            provider = blueprint.origin if blueprint else None
        provider = provider or CloudProvider.AWS
        return f"{URI_SCHEME}{provider.value}/{blueprint_name}/{relative_path}"

    def read_blueprint_file(self, uri: str) -> FileContent:
        """Read the file a blueprints:// URI points at.

        Raises:
            InvalidUriError: Malformed URI.
            ValidationError: Unsafe path or blueprint name.
            SecurityError: Resolved path escapes the workspace root.
            BlueprintFileNotFoundError: No regular file at the resolved path, or
                the file cannot be opened.

        Bytes that are not valid UTF-8 are replaced with U+FFFD.
        """
        parsed = parse_blueprint_uri(uri)

        if self._catalog is not None and self._catalog.get_by_name(parsed.blueprint_name) is None:
            logger.debug("Blueprint %s not in catalog, reading by layout", parsed.blueprint_name)

        full_path = resolve_workspace_path(parsed.workspace_path, self.workspace_root)
        if not full_path.is_file():
            raise BlueprintFileNotFoundError(uri)

        try:
            content = full_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Cannot read %s: %s", uri, exc)
            raise BlueprintFileNotFoundError(uri) from exc
        mime_type = get_mime_type(parsed.relative_path)
        logger.debug("Read %s (%d chars, %s)", uri, len(content), mime_type)
        return FileContent(content=content, mime_type=mime_type)

    def list_blueprint_files(self, provider: CloudProvider, blueprint_name: str) -> List[str]:
        """URIs of a blueprint's README, dev main.tf and module files.

        Hidden directories are skipped; only relevant extensions are listed.
        A missing blueprint directory yields an empty list.
        """
        check_path_syntax(blueprint_name)
        blueprint_dir = resolve_workspace_path(
            f"{provider.value}/{blueprint_name}", self.workspace_root
        )
        if not blueprint_dir.is_dir():
            return []

        uris = []
        for key_file in KEY_FILES:
            if (blueprint_dir / key_file).is_file():
                uris.append(f"{URI_SCHEME}{provider.value}/{blueprint_name}/{key_file}")

        modules_dir = blueprint_dir / "modules"
        if modules_dir.is_dir():
            for dirpath, dirnames, filenames in os.walk(modules_dir):
                dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
                for filename in sorted(filenames):
                    if os.path.splitext(filename)[1] not in RELEVANT_EXTENSIONS:
                        continue
                    rel = Path(dirpath, filename).relative_to(blueprint_dir).as_posix()
                    uris.append(f"{URI_SCHEME}{provider.value}/{blueprint_name}/{rel}")
        return uris
