#!/usr/bin/env python3
# CUI // SP-CTI
"""Wide-event logging for tool calls.

Each tool invocation produces exactly one WideEvent: a flat record carrying
the request id, the tool input, the outcome and timing, merged with the
deployment context captured at start-up. Events go through an injected
EventEmitter so the tool layer never touches logging configuration:

  - LoggingEventEmitter   one single-line JSON record on "blueprints.events"
  - CapturingEventEmitter keeps events in memory (tests)
  - NullEventEmitter      discards events

Usage:
    emitter = LoggingEventEmitter(context={"service": "infra-blueprints"})
    event = WideEvent.start("search_blueprints", {"keyword": "serverless"})
    ...
    emitter.emit(event.finish(200, result_count=3))
"""

import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from blueprint_mcp.resilience.errors import BlueprintError

OUTCOMES = {200: "success", 404: "not_found", 500: "error"}


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class WideEvent:
    """One record per tool call. Fields other than the optional ones are always set."""

    tool: str
    request_id: str
    input: Dict[str, Any]
    status_code: int = 200
    outcome: str = "success"
    duration_ms: int = 0
    recommended_blueprint: Optional[str] = None
    result_count: Optional[int] = None
    error: Optional[Dict[str, str]] = None
    _started: float = field(default=0.0, repr=False, compare=False)

    @classmethod
    def start(cls, tool: str, tool_input: Optional[Mapping[str, Any]] = None) -> "WideEvent":
        return cls(
            tool=tool,
            request_id=new_request_id(),
            input=dict(tool_input or {}),
            _started=time.monotonic(),
        )

    def finish(
        self,
        status_code: int,
        recommended_blueprint: Optional[str] = None,
        result_count: Optional[int] = None,
    ) -> "WideEvent":
        self.status_code = status_code
        self.outcome = OUTCOMES.get(status_code, "error")
        self.duration_ms = int((time.monotonic() - self._started) * 1000)
        if recommended_blueprint is not None:
            self.recommended_blueprint = recommended_blueprint
        if result_count is not None:
            self.result_count = result_count
        return self

    def record_input(self, fields: Mapping[str, Any]) -> "WideEvent":
        """Replace the recorded input with validated values. None values are dropped."""
        self.input = {key: value for key, value in fields.items() if value is not None}
        return self

    def fail(self, exc: BaseException) -> "WideEvent":
        """Mark the event as a 500 carrying the error kind."""
        if isinstance(exc, BlueprintError):
            self.error = exc.to_dict()
        else:
            self.error = {"type": type(exc).__name__, "code": "INTERNAL_ERROR", "message": str(exc)}
        return self.finish(500)

    def to_dict(self, context: Optional[Mapping[str, Any]] = None) -> dict:
        record = dict(context or {})
        record.update({
            "tool": self.tool,
            "request_id": self.request_id,
            "input": self.input,
            "status_code": self.status_code,
            "outcome": self.outcome,
            "duration_ms": self.duration_ms,
        })
        if self.recommended_blueprint is not None:
            record["recommended_blueprint"] = self.recommended_blueprint
        if self.result_count is not None:
            record["result_count"] = self.result_count
        if self.error is not None:
            record["error"] = dict(self.error)
        return record


class EventEmitter(ABC):
    """Sink for wide events."""

    def __init__(self, context: Optional[Mapping[str, Any]] = None):
        self.context = dict(context or {})

    @abstractmethod
    def emit(self, event: WideEvent) -> None:
        """Record one finished event."""


class NullEventEmitter(EventEmitter):
    def emit(self, event: WideEvent) -> None:
        pass


class LoggingEventEmitter(EventEmitter):
    """Writes each event as one JSON line: INFO for 200/404, ERROR for 500."""

    def __init__(self, context: Optional[Mapping[str, Any]] = None,
                 logger: Optional[logging.Logger] = None):
        super().__init__(context)
        self._logger = logger or logging.getLogger("blueprints.events")

    def emit(self, event: WideEvent) -> None:
        level = logging.ERROR if event.status_code >= 500 else logging.INFO
        line = json.dumps(event.to_dict(self.context), default=str, sort_keys=True)
        self._logger.log(level, line)


class CapturingEventEmitter(EventEmitter):
    """Keeps emitted records in memory."""

    def __init__(self, context: Optional[Mapping[str, Any]] = None):
        super().__init__(context)
        self.events: List[dict] = []

    def emit(self, event: WideEvent) -> None:
        self.events.append(event.to_dict(self.context))

    @property
    def last(self) -> Optional[dict]:
        return self.events[-1] if self.events else None

    def clear(self) -> None:
        self.events.clear()


def build_context(config) -> Dict[str, str]:
    """Environment context merged into every event, from a ServerConfig."""
    context = {"service": config.server_name, "version": config.server_version}
    context.update(config.environment)
    return context
