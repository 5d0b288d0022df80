#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint MCP observability: one wide event per tool call."""

from blueprint_mcp.observability.wide_events import (  # noqa: F401
    CapturingEventEmitter,
    EventEmitter,
    LoggingEventEmitter,
    NullEventEmitter,
    WideEvent,
    build_context,
)
