#!/usr/bin/env python3
# CUI // SP-CTI
"""Infrastructure Blueprints MCP server.

Catalog discovery, recommendation and sandboxed file retrieval for
infrastructure blueprints laid out as {workspace}/{provider}/{blueprint}/.
"""

__version__ = "1.0.0"
