#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint MCP server: tools, resources, prompts, stdio and HTTP transports."""
