#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint MCP Resilience Package: structured error hierarchy."""

from blueprint_mcp.resilience.errors import (  # noqa: F401
    BlueprintError,
    BlueprintFileNotFoundError,
    BlueprintNotFoundError,
    ConfigurationError,
    InvalidUriError,
    SecurityError,
    ValidationError,
)
