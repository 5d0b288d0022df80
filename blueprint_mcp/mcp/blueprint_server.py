#!/usr/bin/env python3
# CUI // SP-CTI
"""Infrastructure blueprints MCP server.

Tools:
    search_blueprints      - Search blueprints by keyword
    recommend_blueprint    - Recommend a blueprint from requirements
    extract_pattern        - Capability extraction guidance
    find_by_project        - Blueprint used by a past project
    fetch_blueprint_file   - Read a blueprint file by URI or name + path
    get_workflow_guidance  - Workflow playbooks

Resources:
    blueprints://catalog, blueprints://list, blueprints://{provider}/{blueprint}/{path*}

Prompts:
    new_project, add_capability, migrate_cloud, general

Runs over stdio with Content-Length framing (default) or over the MCP
Streamable HTTP transport (--transport http).

CLI:
    blueprint-mcp
    blueprint-mcp --transport http --port 3000
    blueprint-mcp --workspace-root /srv/blueprints --log-level DEBUG
"""

import argparse
import logging
import sys
from typing import Optional

from blueprint_mcp.catalog.blueprint_catalog import load_catalog
from blueprint_mcp.config import ServerConfig, load_config
from blueprint_mcp.mcp.base_server import MCPServer
from blueprint_mcp.mcp.blueprint_tools import REPOSITORY_URL, TOOL_DEFINITIONS, BlueprintTools
from blueprint_mcp.mcp.catalog_resources import register_catalog_resources
from blueprint_mcp.mcp.workflow_prompts import WORKFLOW_PROMPTS, get_workflow_content
from blueprint_mcp.observability.wide_events import (
    EventEmitter,
    LoggingEventEmitter,
    build_context,
)
from blueprint_mcp.resilience.errors import BlueprintError
from blueprint_mcp.retrieval.file_service import BlueprintFileService

logger = logging.getLogger("blueprints.server")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _prompt_handler(name: str):
    def handler(arguments: dict) -> str:
        return get_workflow_content(name)
    return handler


def create_server(config: ServerConfig, emitter: Optional[EventEmitter] = None) -> MCPServer:
    """Assemble the MCP server: catalog, retrieval, tools, resources, prompts.

    Raises:
        ConfigurationError: Catalog file missing or inconsistent.
    """
    catalog = load_catalog(config.catalog_path)
    file_service = BlueprintFileService(config.workspace_root, catalog)
    emitter = emitter or LoggingEventEmitter(context=build_context(config))
    tools = BlueprintTools(catalog, file_service, emitter)

    server = MCPServer(name=config.server_name, version=config.server_version)

    handlers = tools.handlers()
    for definition in TOOL_DEFINITIONS:
        server.register_tool(
            name=definition["name"],
            description=definition["description"],
            input_schema=definition["input_schema"],
            handler=handlers[definition["name"]],
        )

    register_catalog_resources(server, catalog, file_service, REPOSITORY_URL)

    for prompt in WORKFLOW_PROMPTS:
        server.register_prompt(
            name=prompt["name"],
            description=f"{prompt['title']}: {prompt['description']}",
            arguments=[],
            handler=_prompt_handler(prompt["name"]),
        )

    logger.info(
        "Server %s v%s ready (workspace=%s, %d blueprints)",
        config.server_name, config.server_version, config.workspace_root, len(catalog),
    )
    return server


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Infrastructure blueprints MCP server (stdio or Streamable HTTP)"
    )
    parser.add_argument("--transport", choices=["stdio", "http"], default="stdio",
                        help="Transport to serve (default: stdio)")
    parser.add_argument("--config", help="Server config YAML (default args/blueprint_server_config.yaml)")
    parser.add_argument("--workspace-root", help="Directory holding aws/, azure/ and gcp/ blueprints")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--host", help="HTTP bind host")
    parser.add_argument("--port", type=int, help="HTTP port")
    args = parser.parse_args(argv)

    # stdout is reserved for JSON-RPC frames on the stdio transport
    logging.basicConfig(stream=sys.stderr, level=logging.INFO, format=LOG_FORMAT)

    try:
        config = load_config(
            config_path=args.config,
            overrides={
                "workspace_root": args.workspace_root,
                "log_level": args.log_level,
                "http_host": args.host,
                "http_port": args.port,
            },
        )
        logging.getLogger().setLevel(config.log_level)
        server = create_server(config)
    except BlueprintError as exc:
        logger.critical("Startup failed: %s", exc)
        sys.exit(1)

    if args.transport == "http":
        from blueprint_mcp.mcp.mcp_http import create_app

        app = create_app(server, config)
        logger.info("MCP HTTP: http://%s:%d/mcp/v1/", config.http_host, config.http_port)
        logger.info("Health check: http://%s:%d/health", config.http_host, config.http_port)
        app.run(host=config.http_host, port=config.http_port, threaded=True)
    else:
        server.run()


if __name__ == "__main__":
    main()
