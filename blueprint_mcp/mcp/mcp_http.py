#!/usr/bin/env python3
# CUI // SP-CTI
"""Streamable HTTP transport for the blueprint MCP server.

Serves the same MCPServer dispatcher as stdio, behind one Flask endpoint:

    POST   /mcp/v1/        JSON-RPC request, notification or batch
    GET    /mcp/v1/        SSE stream of server notifications for a session
    DELETE /mcp/v1/        end a session
    GET    /mcp/v1/tools   tool listing, no session needed
    GET    /health         liveness

``initialize`` opens a session and answers with an Mcp-Session-Id header.
Every later request carries that header. Idle sessions expire after
session_ttl_seconds (30 minutes by default).

Usage:
    app = create_app(server, config)
    app.run(host=config.http_host, port=config.http_port, threaded=True)
"""

import json
import logging
import queue
import secrets
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from flask import Blueprint, Flask, Response, jsonify, request

from blueprint_mcp.mcp.base_server import INVALID_REQUEST, PARSE_ERROR, MCPServer

logger = logging.getLogger("blueprints.mcp_http")

DEFAULT_SESSION_TTL_SECONDS = 1800
HEARTBEAT_SECONDS = 30
STREAM_QUEUE_SIZE = 256
SESSION_HEADER = "Mcp-Session-Id"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class _Session:
    created_at: float
    last_active: float
    streams: List[queue.Queue] = field(default_factory=list)


class SessionStore:
    """Live MCP sessions. All access goes through one lock."""

    def __init__(self, ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self._sessions: Dict[str, _Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _expired(self, session: _Session, now: float) -> bool:
        return now - session.last_active > self.ttl_seconds

    def create(self) -> str:
        self.reap_expired()
        session_id = secrets.token_hex(32)
        now = time.time()
        with self._lock:
            self._sessions[session_id] = _Session(created_at=now, last_active=now)
        logger.info("MCP session opened: %s...", session_id[:12])
        return session_id

    def get(self, session_id: str) -> Optional[_Session]:
        """Live session for session_id, touching its activity time."""
        now = time.time()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and self._expired(session, now):
                self._drop(session_id)
                session = None
            if session is not None:
                session.last_active = now
            return session

    def destroy(self, session_id: str) -> bool:
        with self._lock:
            return self._drop(session_id)

    def _drop(self, session_id: str) -> bool:
        # lock held by caller
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        for stream in session.streams:
            try:
                stream.put_nowait(None)
            except queue.Full:
                logger.debug("Stream queue full while closing %s...", session_id[:12])
        logger.info("MCP session closed: %s...", session_id[:12])
        return True

    def reap_expired(self) -> int:
        now = time.time()
        with self._lock:
            stale = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
            for sid in stale:
                self._drop(sid)
        if stale:
            logger.info("Reaped %d idle MCP sessions", len(stale))
        return len(stale)

    def open_stream(self, session_id: str) -> Optional[queue.Queue]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            stream = queue.Queue(maxsize=STREAM_QUEUE_SIZE)
            session.streams.append(stream)
            return stream

    def close_stream(self, session_id: str, stream: queue.Queue) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and stream in session.streams:
                session.streams.remove(stream)

    def broadcast(self, session_id: str, event_type: str, data: dict) -> None:
        """Queue an SSE event on every open stream of a session."""
        payload = json.dumps({"type": event_type, "data": data, "timestamp": _now_iso()})
        with self._lock:
            session = self._sessions.get(session_id)
            for stream in session.streams if session else ():
                try:
                    stream.put_nowait((event_type, payload))
                except queue.Full:
                    logger.warning("Dropping %s for session %s...: stream queue full",
                                   event_type, session_id[:12])


def _rpc_error(rpc_id, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}}


def _json(body, status: int = 200, headers: Optional[dict] = None) -> Response:
    return Response(json.dumps(body), status=status, content_type="application/json",
                    headers=headers or {})


def _accepts_streamable(accept: str) -> bool:
    """Clients must take both JSON and SSE (or anything)."""
    return "*/*" in accept or ("application/json" in accept and "text/event-stream" in accept)


def _first_invalid(messages: list) -> Optional[dict]:
    for msg in messages:
        if not isinstance(msg, dict) or msg.get("jsonrpc") != "2.0":
            rpc_id = msg.get("id") if isinstance(msg, dict) else None
            return _rpc_error(rpc_id, INVALID_REQUEST, "Invalid Request: jsonrpc must be '2.0'")
    return None


def create_mcp_blueprint(server: MCPServer, sessions: SessionStore) -> Blueprint:
    """Flask blueprint serving one MCPServer under /mcp/v1/."""
    mcp_bp = Blueprint("mcp_v1", __name__, url_prefix="/mcp/v1")

    def answer(msg: dict, session_id: str) -> dict:
        if not session_id:
            return _rpc_error(msg.get("id"), INVALID_REQUEST, "No session. Send initialize first.")
        reply = server.dispatch(msg)
        if msg.get("method") == "tools/call":
            failed = reply.get("result", {}).get("isError", True)
            params = msg.get("params")
            sessions.broadcast(session_id, "tool.completed", {
                "tool": params.get("name", "") if isinstance(params, dict) else "",
                "status": "error" if failed else "success",
            })
        return reply

    @mcp_bp.route("/", methods=["POST"])
    def mcp_post():
        if not _accepts_streamable(request.headers.get("Accept", "")):
            return _json(_rpc_error(
                None, INVALID_REQUEST,
                "Not Acceptable: Accept header must include both "
                "application/json and text/event-stream",
            ), 406)

        data = request.get_json(force=True, silent=True)
        if data is None:
            return _json(_rpc_error(None, PARSE_ERROR, "Parse error"), 400)

        batch = isinstance(data, list)
        if batch and not data:
            return _json(_rpc_error(None, INVALID_REQUEST, "Invalid Request: empty batch"), 400)
        messages = data if batch else [data]
        invalid = _first_invalid(messages)
        if invalid is not None:
            return _json(invalid, 400)

        session_id = request.headers.get(SESSION_HEADER, "")
        calls = [m for m in messages if "id" in m and "method" in m]
        opening = any(m["method"] == "initialize" for m in calls)
        if session_id and not opening and sessions.get(session_id) is None:
            return _json(_rpc_error(
                None, INVALID_REQUEST,
                "Invalid or expired session. Send initialize to start a new session.",
            ), 400)

        for msg in messages:
            if "method" in msg and "id" not in msg:
                server.dispatch(msg)
        if not calls:
            return Response("", status=202)

        replies = []
        opened = None
        for msg in calls:
            if msg["method"] == "initialize":
                opened = sessions.create()
                replies.append(server.dispatch(msg))
            else:
                replies.append(answer(msg, opened or session_id))

        headers = {SESSION_HEADER: opened} if opened else None
        return _json(replies if batch else replies[0], 200, headers)

    @mcp_bp.route("/", methods=["GET"])
    def mcp_stream():
        """SSE stream of session notifications, with periodic heartbeat comments."""
        session_id = request.headers.get(SESSION_HEADER, "")
        if not session_id:
            return _json({"error": f"{SESSION_HEADER} header required"}, 400)
        stream = sessions.open_stream(session_id) if sessions.get(session_id) else None
        if stream is None:
            return _json({"error": "Invalid or expired session"}, 400)

        def events():
            hello = {
                "server": server.name,
                "version": server.version,
                "session_id": session_id[:12] + "...",
                "timestamp": _now_iso(),
            }
            try:
                yield f"event: connected\ndata: {json.dumps(hello)}\n\n"
                while True:
                    try:
                        item = stream.get(timeout=HEARTBEAT_SECONDS)
                    except queue.Empty:
                        yield f": heartbeat {_now_iso()}\n\n"
                        continue
                    if item is None:
                        return
                    event_type, payload = item
                    yield f"event: {event_type}\ndata: {payload}\n\n"
            finally:
                sessions.close_stream(session_id, stream)

        return Response(events(), mimetype="text/event-stream", headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        })

    @mcp_bp.route("/", methods=["DELETE"])
    def mcp_delete():
        session_id = request.headers.get(SESSION_HEADER, "")
        if not session_id:
            return _json({"error": f"{SESSION_HEADER} header required"}, 400)
        # unknown or already expired still counts as closed
        sessions.destroy(session_id)
        return Response("", status=204)

    @mcp_bp.route("/tools", methods=["GET"])
    def mcp_tools():
        listing = server.dispatch({"jsonrpc": "2.0", "id": 0, "method": "tools/list"})
        tools = listing["result"]["tools"]
        return jsonify({"tools": tools, "total": len(tools)})

    return mcp_bp


def create_app(server: MCPServer, config=None) -> Flask:
    """Flask app with the MCP endpoint and GET /health."""
    ttl = config.session_ttl_seconds if config is not None else DEFAULT_SESSION_TTL_SECONDS
    sessions = SessionStore(ttl_seconds=ttl)

    app = Flask(__name__)
    app.config["MCP_SESSIONS"] = sessions
    app.register_blueprint(create_mcp_blueprint(server, sessions))

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "ok",
            "server": server.name,
            "version": server.version,
            "sessions": len(sessions),
        })

    return app
