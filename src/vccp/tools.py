"""
Control-plane tools: the operations an agent calls to drive an avatar.

Each tool returns a ToolResult: a human-readable text for the agent plus the
structured result for programmatic callers. Tools never raise for expected
failures (unknown session, duplicate registration, no live connection,
invalid action).
"""

import json
import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel

from vccp.dispatcher import Ack, ActionDispatcher
from vccp.errors import AlreadyRegistered, UnknownSession, ValidationError, VCCPError
from vccp.registry import SessionRegistry
from vccp.validator import MessageValidator

logger = logging.getLogger(__name__)

REGISTER_AGENT = "register-agent"
UNREGISTER_AGENT = "unregister-agent"
GET_CAPABILITY = "get-capability"
GET_PERCEPTION = "get-perception"
PLAY_ACTION = "play-action"
LIST_SESSIONS = "list-sessions"

_SESSION_ID_PROPERTY = {
    "type": "string",
    "description": "Session ID of the avatar. The avatar connects to the WebSocket endpoint with this ID.",
}

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": REGISTER_AGENT,
        "description": "Register a new agent session. The WebSocket client must connect using this session ID. "
                       "A new ID is generated when none is given.",
        "inputSchema": {
            "type": "object",
            "properties": {"session_id": _SESSION_ID_PROPERTY},
        },
    },
    {
        "name": UNREGISTER_AGENT,
        "description": "Unregister an agent session and close its WebSocket connection, if any.",
        "inputSchema": {
            "type": "object",
            "properties": {"session_id": _SESSION_ID_PROPERTY},
            "required": ["session_id"],
        },
    },
    {
        "name": GET_CAPABILITY,
        "description": "Get the action definitions the character can perform.",
        "inputSchema": {
            "type": "object",
            "properties": {"session_id": _SESSION_ID_PROPERTY},
            "required": ["session_id"],
        },
    },
    {
        "name": GET_PERCEPTION,
        "description": "Get the latest perception of each category.",
        "inputSchema": {
            "type": "object",
            "properties": {"session_id": _SESSION_ID_PROPERTY},
            "required": ["session_id"],
        },
    },
    {
        "name": PLAY_ACTION,
        "description": "Make the character perform an action. Use get-capability to see which actions it supports.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "session_id": _SESSION_ID_PROPERTY,
                "action": {
                    "type": "object",
                    "description": 'VCCP envelope: {"type": "action", "category": ..., "timestamp": ..., "data": {...}}',
                },
            },
            "required": ["session_id", "action"],
        },
    },
    {
        "name": LIST_SESSIONS,
        "description": "List registered sessions and their connection state.",
        "inputSchema": {"type": "object", "properties": {}},
    },
]


class ToolResult(BaseModel):
    ok: bool
    text: str
    data: Any = None
    error: Optional[str] = None  # VCCPError code on failure

    @classmethod
    def failure(cls, error: VCCPError, text: Optional[str] = None) -> "ToolResult":
        return cls(ok=False, text=text or error.message, error=error.code, data=error.details)


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


class ControlPlane:
    def __init__(
        self,
        registry: SessionRegistry,
        dispatcher: ActionDispatcher,
        validator: Optional[MessageValidator] = None,
    ):
        self._registry = registry
        self._dispatcher = dispatcher
        self._validator = validator or MessageValidator()

    def register_agent(self, session_id: Optional[str] = None) -> ToolResult:
        sid = session_id or str(uuid.uuid4())
        try:
            self._registry.register(sid)
        except AlreadyRegistered as e:
            return ToolResult.failure(e, "Agent is already registered")
        return ToolResult(
            ok=True,
            text=f"Agent registered successfully. Session ID: {sid}",
            data={"session_id": sid},
        )

    async def unregister_agent(self, session_id: str) -> ToolResult:
        try:
            connection = self._registry.remove(session_id)
        except UnknownSession as e:
            return ToolResult.failure(e)
        if connection is not None and connection.is_open:
            try:
                await connection.close(1000, "Session unregistered")
            except Exception as e:
                logger.warning("Closing connection of session %s failed: %s", session_id, e)
        return ToolResult(ok=True, text=f"Agent unregistered. Session ID: {session_id}",
                          data={"session_id": session_id})

    def get_capability(self, session_id: str) -> ToolResult:
        try:
            capability = self._registry.get_capability(session_id)
        except UnknownSession as e:
            return ToolResult.failure(e)
        return ToolResult(ok=True, text=_dumps(capability), data=capability)

    def get_perception(self, session_id: str) -> ToolResult:
        try:
            perceptions = self._registry.get_perceptions(session_id)
        except UnknownSession as e:
            return ToolResult.failure(e)
        data = [p.to_wire() for p in perceptions]
        return ToolResult(ok=True, text=_dumps(data), data=data)

    async def play_action(self, session_id: str, action: Any) -> ToolResult:
        checked = self._validator.validate(action)
        if isinstance(checked, ValidationError):
            return ToolResult.failure(checked, f"Invalid schema: {checked.message}")

        result = await self._dispatcher.send(session_id, checked)
        if isinstance(result, Ack):
            return ToolResult(ok=True, text="Action performed.", data=result.model_dump())
        return ToolResult.failure(result, f"Failed to perform action: {result.message}")

    def list_sessions(self) -> ToolResult:
        data = [info.model_dump(mode="json") for info in self._registry.sessions()]
        return ToolResult(ok=True, text=_dumps(data), data=data)

    async def call(self, name: str, arguments: Optional[dict[str, Any]] = None) -> ToolResult:
        """Execute a tool by name with the given arguments."""
        args = arguments or {}
        logger.info("Tool called: %s", name)

        if name == LIST_SESSIONS:
            return self.list_sessions()

        session_id = args.get("session_id")
        if name == REGISTER_AGENT and session_id is None:
            return self.register_agent()
        if not isinstance(session_id, str) or not session_id:
            return ToolResult(ok=False, text="Session ID is invalid", error="invalid_arguments")

        if name == REGISTER_AGENT:
            return self.register_agent(session_id)
        elif name == UNREGISTER_AGENT:
            return await self.unregister_agent(session_id)
        elif name == GET_CAPABILITY:
            return self.get_capability(session_id)
        elif name == GET_PERCEPTION:
            return self.get_perception(session_id)
        elif name == PLAY_ACTION:
            return await self.play_action(session_id, args.get("action"))

        return ToolResult(ok=False, text=f"Unknown tool: {name}", error="unknown_tool")
