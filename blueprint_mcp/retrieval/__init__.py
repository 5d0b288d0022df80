#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint file retrieval by blueprints:// URI."""

from blueprint_mcp.retrieval.file_service import (  # noqa: F401
    BlueprintFileService,
    BlueprintFileURI,
    get_mime_type,
    parse_blueprint_uri,
)
