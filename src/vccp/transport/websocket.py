"""
WebSocket data-plane server.

Endpoint: ws://{host}:{port}{ws_path}/{session_id}

A connection is accepted only for a registered session id and only while no
other connection for that id is open; otherwise it is closed with 1008.
Every inbound frame is handed to the MessageRouter; the server never answers
frames. On close or error the connection is unbound from its session.
"""

import logging
from typing import Optional
from urllib.parse import unquote, urlsplit

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosedError
from websockets.protocol import State

from vccp.errors import SessionBusy, UnknownSession
from vccp.registry import SessionRegistry
from vccp.router import MessageRouter

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


class WebSocketConnection:
    """Registry-facing wrapper around one websockets server connection."""

    def __init__(self, ws: ServerConnection):
        self._ws = ws

    @property
    def is_open(self) -> bool:
        return self._ws.state is State.OPEN

    @property
    def remote_address(self) -> object:
        return self._ws.remote_address

    async def send(self, message: str) -> None:
        await self._ws.send(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._ws.close(code, reason)


def session_id_from_path(path: str, ws_path: str = "/vccp") -> Optional[str]:
    """Extract the session id from a request path, or None if absent or malformed."""
    parts = urlsplit(path).path
    prefix = ws_path.rstrip("/") + "/"
    if not parts.startswith(prefix):
        return None
    session_id = unquote(parts[len(prefix):])
    if not session_id or "/" in session_id:
        return None
    return session_id


class DataPlaneServer:
    def __init__(
        self,
        registry: SessionRegistry,
        router: MessageRouter,
        host: str = "127.0.0.1",
        port: int = 8080,
        ws_path: str = "/vccp",
    ):
        self._registry = registry
        self._router = router
        self._host = host
        self._port = port
        self._ws_path = ws_path
        self._server: Optional[Server] = None

    @property
    def port(self) -> int:
        """The bound port; differs from the configured one when that was 0."""
        if self._server is not None:
            for sock in self._server.sockets:
                return sock.getsockname()[1]
        return self._port

    @property
    def url(self) -> str:
        return f"ws://{self._host}:{self.port}{self._ws_path.rstrip('/')}"

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await serve(self.handle, self._host, self._port)
        logger.info("WebSocket endpoint available at %s/{session_id}", self.url)

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None

    async def __aenter__(self) -> "DataPlaneServer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def handle(self, ws: ServerConnection) -> None:
        session_id = session_id_from_path(ws.request.path, self._ws_path)
        if not session_id:
            logger.error("WebSocket connection attempted without session ID")
            await ws.close(POLICY_VIOLATION, "Session ID required")
            return

        if not self._registry.contains(session_id):
            logger.error("WebSocket connection attempted with unregistered session ID: %s", session_id)
            await ws.close(POLICY_VIOLATION, "Invalid session ID")
            return

        connection = WebSocketConnection(ws)
        try:
            self._registry.bind(session_id, connection)
        except SessionBusy:
            logger.error("Rejecting second connection for session %s", session_id)
            await ws.close(POLICY_VIOLATION, "Session already connected")
            return
        except UnknownSession:
            await ws.close(POLICY_VIOLATION, "Invalid session ID")
            return

        logger.info("WebSocket client connected with session ID: %s", session_id)
        try:
            async for frame in ws:
                self._router.on_frame(session_id, frame)
        except ConnectionClosedError as e:
            logger.warning("WebSocket client error for session %s: %s", session_id, e)
        finally:
            try:
                self._registry.unbind(session_id, connection)
            except UnknownSession:
                pass  # unregistered while connected
            logger.info("Client disconnected from session: %s", session_id)
