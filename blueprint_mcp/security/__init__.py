#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint MCP security: workspace path sandbox."""

from blueprint_mcp.security.path_sandbox import (  # noqa: F401
    MAX_PATH_LENGTH,
    check_path_syntax,
    resolve_workspace_path,
    validate_path,
)
