"""
Avatar-side data-plane client.

Connects to ws://{server}/vccp/{session_id}, declares capability, pushes
perceptions and receives actions. Inbound frames that do not validate are
logged and dropped.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union
from urllib.parse import quote

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.protocol import State

from vccp.errors import ConnectionError, ValidationError
from vccp.models.envelope import Envelope
from vccp.transport.envelope import build_capability, build_perception, decode_frame, encode_envelope
from vccp.validator import validate

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Envelope], Union[None, Awaitable[None]]]


class AvatarClient:
    def __init__(
        self,
        server_url: str,
        session_id: str,
        ws_path: str = "/vccp",
        open_timeout: float = 10.0,
    ):
        self._server_url = server_url.rstrip("/")
        self._session_id = session_id
        self._ws_path = "/" + ws_path.strip("/")
        self._open_timeout = open_timeout
        self._ws: Optional[ClientConnection] = None
        self._handlers: list[ActionHandler] = []

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def url(self) -> str:
        return f"{self._server_url}{self._ws_path}/{quote(self._session_id, safe='')}"

    @property
    def connected(self) -> bool:
        return self._ws is not None and self._ws.state is State.OPEN

    @property
    def close_code(self) -> Optional[int]:
        return self._ws.close_code if self._ws is not None else None

    def add_action_handler(self, handler: ActionHandler) -> Callable[[], None]:
        """Add a handler for inbound envelopes. Returns a function that removes it."""
        self._handlers.append(handler)
        def remove() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def on_action(self, handler: Optional[ActionHandler]) -> None:
        """Set a single handler, replacing all others."""
        self._handlers.clear()
        if handler is not None:
            self._handlers.append(handler)

    async def connect(self) -> None:
        if not self._session_id:
            raise ConnectionError("Session ID is required to connect")
        if self.connected:
            logger.warning("WebSocket is already connected")
            return
        try:
            self._ws = await connect(self.url, open_timeout=self._open_timeout)
        except (OSError, asyncio.TimeoutError, InvalidHandshake, InvalidURI) as e:
            raise ConnectionError(f"Failed to connect to {self.url}: {e}")
        logger.info("WebSocket connected with session ID: %s", self._session_id)

    async def disconnect(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def __aenter__(self) -> "AvatarClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    async def send(self, envelope: Envelope) -> bool:
        """Send one envelope. Returns False when not connected or the write fails."""
        if not self.connected:
            logger.error("WebSocket is not connected")
            return False
        try:
            await self._ws.send(encode_envelope(envelope))  # type: ignore[union-attr]
        except ConnectionClosed as e:
            logger.error("Failed to send message: %s", e)
            return False
        return True

    async def send_capability(self, actions: list[Any]) -> bool:
        return await self.send(build_capability(actions))

    async def send_perception(self, category: str, data: dict[str, Any]) -> bool:
        return await self.send(build_perception(category, data))

    async def handle_frame(self, raw: Union[bytes, str]) -> Optional[Envelope]:
        """Validate one inbound frame and pass it to every handler."""
        try:
            decoded = decode_frame(raw)
        except ValueError as e:
            logger.error("Failed to parse WebSocket message: %s", e)
            return None
        envelope = validate(decoded)
        if isinstance(envelope, ValidationError):
            logger.error("Invalid VCCP message format: %s", envelope.message)
            return None
        for handler in list(self._handlers):
            result = handler(envelope)
            if inspect.isawaitable(result):
                await result
        return envelope

    async def run(self) -> None:
        """Receive until the connection closes."""
        if self._ws is None:
            raise ConnectionError("Not connected")
        try:
            async for frame in self._ws:
                await self.handle_frame(frame)
        except ConnectionClosed as e:
            logger.warning("WebSocket connection closed: %s", e)
        finally:
            logger.info("WebSocket connection closed")
