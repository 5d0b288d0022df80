#!/usr/bin/env python3
# CUI // SP-CTI
"""MCP server core: registries plus JSON-RPC 2.0 dispatch.

Wire format on stdio is LSP-style framing:
    Content-Length: N\r\n\r\n{json_payload}

A bare JSON object on its own line is also accepted on input. Messages
without an id are notifications and are never answered. The Streamable
HTTP transport (mcp_http.py) calls dispatch() directly.
"""

import json
import logging
import re
import sys
import traceback
from typing import Any, Callable, Dict, List, Optional

from blueprint_mcp.catalog.models import FileContent
from blueprint_mcp.resilience.errors import BlueprintError

logger = logging.getLogger("blueprints.mcp")

PROTOCOL_VERSION = "2024-11-05"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class _MethodNotFound(Exception):
    """Unknown method, tool, prompt or resource URI."""


class _InvalidRequest(Exception):
    """Message is not a well-formed JSON-RPC request."""


class _InvalidParams(Exception):
    """params is present but not an object."""


def _template_regex(uri_template: str) -> "re.Pattern":
    """Compile a URI template. {name} matches one segment, {name*} the rest of the URI."""
    pieces = ["^"]
    pos = 0
    for match in re.finditer(r"\{(\w+)(\*?)\}", uri_template):
        pieces.append(re.escape(uri_template[pos:match.start()]))
        name, greedy = match.groups()
        pieces.append(f"(?P<{name}>.+)" if greedy else f"(?P<{name}>[^/]+)")
        pos = match.end()
    pieces.append(re.escape(uri_template[pos:]))
    pieces.append("$")
    return re.compile("".join(pieces))


def read_frame(stream) -> Optional[dict]:
    """Read one framed message from a binary stream. None on EOF or garbage."""
    length = None
    while True:
        raw = stream.readline()
        if not raw:
            return None
        line = raw.decode("utf-8", errors="replace").strip()
        if not line:
            if length is None:
                continue
            break
        if line.startswith("{"):
            try:
                return json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Dropping malformed JSON line: %s", line[:200])
                return None
        name, _, value = line.partition(":")
        if name.strip().lower() == "content-length":
            try:
                length = int(value.strip())
            except ValueError:
                logger.warning("Bad Content-Length header: %s", line)
                return None

    payload = stream.read(length)
    if not payload:
        return None
    try:
        return json.loads(payload.decode("utf-8"))
    except json.JSONDecodeError as exc:
        logger.error("Undecodable frame body: %s", exc)
        return None


def write_frame(stream, message: dict) -> None:
    """Write one framed message to a binary stream and flush it."""
    payload = json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    stream.write(b"Content-Length: %d\r\n\r\n" % len(payload))
    stream.write(payload)
    stream.flush()


def _response(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _error(request_id: Any, code: int, message: str, data: Any = None) -> dict:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def _str_param(params: dict, key: str) -> str:
    value = params.get(key, "")
    if not isinstance(value, str):
        raise _InvalidParams(f"{key} must be a string")
    return value


def _tool_error(error: dict) -> dict:
    return {
        "content": [{"type": "text", "text": json.dumps({"error": error}, indent=2)}],
        "structuredContent": {"error": error},
        "isError": True,
    }


class MCPServer:
    """Tool, resource and prompt registries behind one JSON-RPC dispatcher."""

    def __init__(self, name: str = "infra-blueprints", version: str = "1.0.0"):
        self.name = name
        self.version = version
        self._tools: Dict[str, dict] = {}
        self._resources: Dict[str, dict] = {}
        self._templates: Dict[str, dict] = {}
        self._prompts: Dict[str, dict] = {}
        self._initialized = False
        self._routes: Dict[str, Callable[[dict], Any]] = {
            "initialize": self._initialize,
            "notifications/initialized": self._mark_initialized,
            "ping": lambda params: {},
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "resources/list": self._list_resources,
            "resources/templates/list": self._list_templates,
            "resources/read": self._read_resource,
            "prompts/list": self._list_prompts,
            "prompts/get": self._get_prompt,
        }

    # -- registration -----------------------------------------------------

    def register_tool(self, name: str, description: str, input_schema: dict,
                      handler: Callable[[dict], Any]) -> None:
        """Expose handler(arguments) as tools/call target `name`."""
        self._tools[name] = {
            "description": description,
            "input_schema": input_schema,
            "handler": handler,
        }
        logger.info("Registered tool: %s", name)

    def register_resource(self, uri: str, name: str, description: str,
                          handler: Callable[[str], Any],
                          mime_type: str = "application/json") -> None:
        """Expose handler(uri) for one concrete resource URI."""
        self._resources[uri] = {
            "name": name,
            "description": description,
            "mime_type": mime_type,
            "handler": handler,
        }
        logger.debug("Registered resource: %s", uri)

    def register_resource_template(self, uri_template: str, name: str, description: str,
                                   handler: Callable[[str], Any],
                                   mime_type: str = "text/plain") -> None:
        """Expose handler(uri) for every URI matching uri_template.

        Templates are consulted only when no concrete resource matches.
        """
        self._templates[uri_template] = {
            "name": name,
            "description": description,
            "mime_type": mime_type,
            "handler": handler,
            "regex": _template_regex(uri_template),
        }
        logger.info("Registered resource template: %s", uri_template)

    def register_prompt(self, name: str, description: str, arguments: List[dict],
                        handler: Callable[[dict], Any]) -> None:
        self._prompts[name] = {
            "description": description,
            "arguments": arguments,
            "handler": handler,
        }
        logger.info("Registered prompt: %s", name)

    # -- dispatch ---------------------------------------------------------

    def dispatch(self, msg: dict) -> Optional[dict]:
        """Handle one JSON-RPC message. Returns None for notifications.

        A non-string method is -32600 and non-object params -32602. Unknown
        methods map to -32601, blueprint errors to -32602 carrying the error
        kind as data, anything else to -32603.
        """
        method = msg.get("method", "")
        params = msg.get("params") or {}
        request_id = msg.get("id")
        notification = "id" not in msg
        logger.debug("Dispatch: method=%r, id=%s", method, request_id)

        try:
            if not isinstance(method, str):
                raise _InvalidRequest("Invalid Request: method must be a string")
            if not isinstance(params, dict):
                raise _InvalidParams("params must be an object")
            route = self._routes.get(method)
            if route is None:
                raise _MethodNotFound(f"Unknown method: {method}")
            result = route(params)
        except _InvalidRequest as exc:
            reply = _error(request_id, INVALID_REQUEST, str(exc))
        except _InvalidParams as exc:
            reply = _error(request_id, INVALID_PARAMS, str(exc))
        except _MethodNotFound as exc:
            reply = _error(request_id, METHOD_NOT_FOUND, str(exc))
        except BlueprintError as exc:
            logger.warning("%s rejected: %s", method, exc)
            reply = _error(request_id, INVALID_PARAMS, exc.message, exc.to_dict())
        except Exception as exc:
            logger.error("Error handling %s: %s\n%s", method, exc, traceback.format_exc())
            reply = _error(request_id, INTERNAL_ERROR, str(exc))
        else:
            reply = _response(request_id, result)
        return None if notification else reply

    # -- lifecycle --------------------------------------------------------

    def _initialize(self, params: dict) -> dict:
        capabilities: Dict[str, Any] = {}
        if self._tools:
            capabilities["tools"] = {"listChanged": False}
        if self._resources or self._templates:
            capabilities["resources"] = {"subscribe": False, "listChanged": False}
        if self._prompts:
            capabilities["prompts"] = {"listChanged": False}
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": capabilities,
            "serverInfo": {"name": self.name, "version": self.version},
        }

    def _mark_initialized(self, params: dict) -> None:
        self._initialized = True

    # -- tools ------------------------------------------------------------

    def _list_tools(self, params: dict) -> dict:
        return {
            "tools": [
                {"name": name, "description": t["description"], "inputSchema": t["input_schema"]}
                for name, t in self._tools.items()
            ]
        }

    def _call_tool(self, params: dict) -> dict:
        """Run a tool. Handler errors come back as isError results, not JSON-RPC errors."""
        tool_name = _str_param(params, "name")
        tool = self._tools.get(tool_name)
        if tool is None:
            raise _MethodNotFound(f"Unknown tool: {tool_name}")

        try:
            result = tool["handler"](params.get("arguments") or {})
        except BlueprintError as exc:
            logger.warning("Tool %s raised %s: %s", tool_name, exc.kind, exc.message)
            return _tool_error(dict(exc.to_dict(), tool=tool_name))
        except Exception as exc:
            logger.error("Tool %s crashed: %s\n%s", tool_name, exc, traceback.format_exc())
            return _tool_error({
                "type": type(exc).__name__,
                "code": "INTERNAL_ERROR",
                "message": str(exc),
                "tool": tool_name,
            })

        if hasattr(result, "to_content"):
            return dict(result.to_content(), isError=False)
        text = result if isinstance(result, str) else json.dumps(result, indent=2, default=str)
        return {"content": [{"type": "text", "text": text}], "isError": False}

    # -- resources --------------------------------------------------------

    def _list_resources(self, params: dict) -> dict:
        return {
            "resources": [
                {"uri": uri, "name": r["name"], "description": r["description"],
                 "mimeType": r["mime_type"]}
                for uri, r in self._resources.items()
            ]
        }

    def _list_templates(self, params: dict) -> dict:
        return {
            "resourceTemplates": [
                {"uriTemplate": template, "name": t["name"], "description": t["description"],
                 "mimeType": t["mime_type"]}
                for template, t in self._templates.items()
            ]
        }

    def _find_resource(self, uri: str) -> dict:
        if uri in self._resources:
            return self._resources[uri]
        for template in self._templates.values():
            if template["regex"].match(uri):
                return template
        raise _MethodNotFound(f"Unknown resource URI: {uri}")

    def _read_resource(self, params: dict) -> dict:
        """resources/read. FileContent results supply their own MIME type."""
        uri = _str_param(params, "uri")
        entry = self._find_resource(uri)
        content = entry["handler"](uri)
        mime_type = entry["mime_type"]
        if isinstance(content, FileContent):
            mime_type, content = content.mime_type, content.content
        elif isinstance(content, (dict, list)):
            content = json.dumps(content, indent=2, default=str)
        return {"contents": [{"uri": uri, "mimeType": mime_type, "text": str(content)}]}

    # -- prompts ----------------------------------------------------------

    def _list_prompts(self, params: dict) -> dict:
        return {
            "prompts": [
                {"name": name, "description": p["description"], "arguments": p["arguments"]}
                for name, p in self._prompts.items()
            ]
        }

    def _get_prompt(self, params: dict) -> dict:
        prompt_name = _str_param(params, "name")
        prompt = self._prompts.get(prompt_name)
        if prompt is None:
            raise _MethodNotFound(f"Unknown prompt: {prompt_name}")

        result = prompt["handler"](params.get("arguments") or {})
        if isinstance(result, dict) and "messages" in result:
            return result
        if not isinstance(result, str):
            result = json.dumps(result, indent=2, default=str)
        return {
            "description": prompt["description"],
            "messages": [{"role": "user", "content": {"type": "text", "text": result}}],
        }

    # -- stdio loop -------------------------------------------------------

    def run(self, stdin=None, stdout=None) -> None:
        """Serve framed JSON-RPC until EOF or Ctrl-C."""
        stdin = stdin or sys.stdin.buffer
        stdout = stdout or sys.stdout.buffer
        logger.info("MCP server '%s' v%s starting (protocol %s)",
                    self.name, self.version, PROTOCOL_VERSION)
        try:
            while True:
                msg = read_frame(stdin)
                if msg is None:
                    logger.info("EOF on stdin, shutting down.")
                    return
                if not isinstance(msg, dict) or "method" not in msg:
                    if isinstance(msg, dict) and msg.get("id") is not None:
                        write_frame(stdout, _error(msg["id"], INVALID_REQUEST,
                                                   "Missing 'method' field"))
                    continue
                reply = self.dispatch(msg)
                if reply is not None:
                    write_frame(stdout, reply)
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down.")
