#!/usr/bin/env python3
# CUI // SP-CTI
"""MCP resources for the blueprint catalog.

Resources:
    blueprints://catalog                          - Catalog overview (markdown)
    blueprints://list                             - All blueprints (JSON)
    blueprints://{provider}/{blueprint}/{path*}   - Any blueprint file (template)

Plus one concrete resource per README.md, environments/dev/main.tf and
module file found on disk when the server starts.
"""

import logging
import re
from pathlib import Path
from typing import List

from blueprint_mcp.catalog.blueprint_catalog import BlueprintCatalog
from blueprint_mcp.resilience.errors import ValidationError
from blueprint_mcp.retrieval.file_service import (
    BlueprintFileService,
    get_mime_type,
    parse_blueprint_uri,
)
from blueprint_mcp.security.path_sandbox import resolve_workspace_path

logger = logging.getLogger("blueprints.resources")

CATALOG_URI = "blueprints://catalog"
LIST_URI = "blueprints://list"
FILE_TEMPLATE = "blueprints://{provider}/{blueprint}/{path*}"
AGENTS_FILE = "AGENTS.md"


def generate_catalog_table(catalog: BlueprintCatalog, repository_url: str = "") -> str:
    """Markdown overview used when the workspace has no AGENTS.md."""
    rows = "\n".join(
        f"| {b.name} | {b.description} | {b.database} | {b.pattern.value} | "
        f"{b.use_case} | {b.origin.value} |"
        for b in catalog.get_all()
    )
    clone = f"git clone {repository_url}\n" if repository_url else ""
    return f"""# Terraform Infrastructure Blueprints

## Blueprint Catalog

| Blueprint | Description | Database | Pattern | Use Case | Cloud |
|-----------|-------------|----------|---------|----------|-------|
{rows}

## Quick Start

```bash
{clone}cd terraform-infrastructure-blueprints/{{provider}}/{{blueprint-name}}/environments/dev
terraform init && terraform apply
```
"""


def get_catalog_content(catalog: BlueprintCatalog, workspace_root: Path,
                        repository_url: str = "") -> str:
    """Workspace AGENTS.md if present, else a generated catalog table."""
    agents = resolve_workspace_path(AGENTS_FILE, workspace_root)
    if agents.is_file():
        logger.debug("Serving catalog from %s", agents)
        return agents.read_text(encoding="utf-8", errors="replace")
    return generate_catalog_table(catalog, repository_url)


def _resource_name(uri: str) -> str:
    rest = uri.split("://", 1)[-1]
    return re.sub(r"[^a-zA-Z0-9-]+", "-", f"blueprint-{rest}").strip("-").lower()


def register_catalog_resources(server, catalog: BlueprintCatalog,
                               file_service: BlueprintFileService,
                               repository_url: str = "") -> List[str]:
    """Register catalog, list, template and on-disk file resources.

    Returns the URIs of the concrete file resources registered.
    """
    workspace_root = file_service.workspace_root

    server.register_resource(
        uri=CATALOG_URI,
        name="Blueprint Catalog",
        description="Overview of all infrastructure blueprints (AGENTS.md or generated table)",
        handler=lambda uri: get_catalog_content(catalog, workspace_root, repository_url),
        mime_type="text/markdown",
    )
    server.register_resource(
        uri=LIST_URI,
        name="Blueprint List",
        description="All blueprints with database, pattern, use case and cloud",
        handler=lambda uri: [b.to_dict() for b in catalog.get_all()],
        mime_type="application/json",
    )

    server.register_resource_template(
        uri_template=FILE_TEMPLATE,
        name="Blueprint File",
        description="Any file inside a blueprint, by provider, blueprint name and relative path",
        handler=file_service.read_blueprint_file,
        mime_type="text/plain",
    )

    registered = []
    for blueprint in catalog.get_all():
        try:
            uris = file_service.list_blueprint_files(blueprint.origin, blueprint.name)
        except ValidationError as exc:
            logger.warning("Skipping files for %s: %s", blueprint.name, exc)
            continue
        for uri in uris:
            relative_path = parse_blueprint_uri(uri).relative_path
            server.register_resource(
                uri=uri,
                name=_resource_name(uri),
                description=f"{relative_path} from {blueprint.name} blueprint",
                handler=file_service.read_blueprint_file,
                mime_type=get_mime_type(relative_path),
            )
            registered.append(uri)

    logger.info("Registered %d blueprint file resources", len(registered))
    return registered
