#!/usr/bin/env python3
"""
SSE session management for the n8n MCP server

Each GET /sse connection becomes one session with its own protocol server:

    connecting  -> registered, event stream not yet open
    active      -> stream open and endpoint advertised, messages flow both ways
    closed      -> connection dropped, removed from the table

Clients post JSON-RPC messages to /messages?sessionId=<id>; replies go back
over the session's event stream. The session table is only touched from the
event loop, so no lock is needed around it.
"""

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union
from uuid import uuid4

import anyio
from aiohttp import web
from anyio.streams.memory import MemoryObjectSendStream
from mcp import types
from mcp.server.lowlevel import Server
from mcp.shared.message import SessionMessage
from pydantic import ValidationError

from .errors import (
    AmbiguousSessionError,
    NoActiveSessionError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_PING_INTERVAL = 15.0
SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class SessionState(enum.Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class SSESession:
    """One streaming connection and the inbound side of its protocol server"""
    session_id: str
    inbound: MemoryObjectSendStream
    state: SessionState = SessionState.CONNECTING
    created_at: float = field(default_factory=time.time)

    async def deliver(self, message: Union[SessionMessage, Exception]) -> None:
        try:
            await self.inbound.send(message)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            raise SessionNotFoundError(self.session_id)

    def to_dict(self) -> Dict[str, object]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "age": round(time.time() - self.created_at, 1),
        }


def encode_event(event: str, data: str) -> bytes:
    """Format one server-sent event"""
    lines = "".join(f"data: {line}\n" for line in (data.splitlines() or [""]))
    return f"event: {event}\n{lines}\n".encode("utf-8")


class SessionManager:
    """
    Owns the table of live SSE sessions.

    Args:
        server_factory: builds a fresh protocol server for every session
        message_path: path advertised to clients for posting messages
        ping_interval: seconds between keep-alive comments, None disables
    """

    def __init__(
        self,
        server_factory: Callable[[], Server],
        message_path: str = "/messages",
        ping_interval: Optional[float] = DEFAULT_PING_INTERVAL,
    ):
        self.server_factory = server_factory
        self.message_path = message_path
        self.ping_interval = ping_interval
        self._sessions: Dict[str, SSESession] = {}

    def active_sessions(self) -> List[SSESession]:
        return [s for s in self._sessions.values() if s.state is SessionState.ACTIVE]

    def resolve(self, session_id: Optional[str]) -> SSESession:
        """
        Find the session a posted message belongs to.

        Without a sessionId the message is routed only when exactly one
        session is active; with several it is rejected instead of guessed.
        """
        if session_id:
            session = self._sessions.get(session_id)
            if session is None or session.state is SessionState.CLOSED:
                raise SessionNotFoundError(session_id)
            return session

        active = self.active_sessions()
        if not active:
            raise NoActiveSessionError()
        if len(active) > 1:
            raise AmbiguousSessionError(len(active))
        logger.debug(f"No sessionId supplied, routing to {active[0].session_id}")
        return active[0]

    # ===== STREAMING CONNECTION =====

    async def connect_sse(self, request: web.Request) -> web.StreamResponse:
        """Serve one session until the client disconnects"""
        session_id = uuid4().hex
        inbound_writer, inbound_reader = anyio.create_memory_object_stream(0)
        outbound_writer, outbound_reader = anyio.create_memory_object_stream(0)

        session = SSESession(session_id=session_id, inbound=inbound_writer)
        self._sessions[session_id] = session
        server = self.server_factory()
        logger.info(f"New SSE connection {session_id} from {request.remote}")

        response = web.StreamResponse(status=200, headers=SSE_HEADERS)
        write_lock = anyio.Lock()

        async def send(chunk: bytes) -> bool:
            try:
                async with write_lock:
                    await response.write(chunk)
                return True
            except ConnectionResetError:
                return False

        try:
            await response.prepare(request)
            session.state = SessionState.ACTIVE
            endpoint = f"{self.message_path}?sessionId={session_id}"
            if not await send(encode_event("endpoint", endpoint)):
                return response

            async with anyio.create_task_group() as tg:

                async def run_server():
                    try:
                        await server.run(
                            inbound_reader,
                            outbound_writer,
                            server.create_initialization_options(),
                        )
                    except Exception as e:
                        logger.error(f"Protocol server for session {session_id} failed: {e}")
                    tg.cancel_scope.cancel()

                async def keepalive():
                    while True:
                        await anyio.sleep(self.ping_interval)
                        if not await send(b": ping\n\n"):
                            tg.cancel_scope.cancel()
                            return

                tg.start_soon(run_server)
                if self.ping_interval:
                    tg.start_soon(keepalive)

                async for session_message in outbound_reader:
                    payload = session_message.message.model_dump_json(
                        by_alias=True, exclude_none=True
                    )
                    if not await send(encode_event("message", payload)):
                        break
                tg.cancel_scope.cancel()
        finally:
            session.state = SessionState.CLOSED
            self._sessions.pop(session_id, None)
            for stream in (inbound_writer, inbound_reader, outbound_writer, outbound_reader):
                stream.close()
            logger.info(f"SSE connection closed {session_id}")

        return response

    # ===== POSTED MESSAGES =====

    async def handle_post_message(self, request: web.Request) -> web.Response:
        """Deliver one posted JSON-RPC message into its session"""
        session = self.resolve(request.query.get("sessionId"))
        body = await request.read()

        try:
            message = types.JSONRPCMessage.model_validate_json(body)
        except ValidationError as e:
            logger.warning(f"Invalid message for session {session.session_id}: {e}")
            await session.deliver(e)
            return web.json_response({"error": "Could not parse message"}, status=400)

        await session.deliver(SessionMessage(message))
        return web.Response(status=202, text="Accepted")
