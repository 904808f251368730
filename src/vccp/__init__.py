"""
vccp - Virtual Character Control Protocol bridge.

Session registry and message routing between an MCP control plane (an LLM
agent) and one WebSocket data-plane connection per avatar.
"""

from vccp.app import VCCPServer
from vccp.dispatcher import Ack, ActionDispatcher
from vccp.errors import (
    AlreadyRegistered,
    ConfigError,
    ConnectionError,
    DispatchError,
    InvalidEnvelope,
    NotConnected,
    SendFailure,
    SessionBusy,
    UnknownSession,
    ValidationError,
    VCCPError,
)
from vccp.models.envelope import Envelope, Kind
from vccp.models.session import SessionInfo, SessionState
from vccp.registry import SessionRegistry
from vccp.router import MessageRouter
from vccp.tools import ControlPlane, ToolResult
from vccp.validator import MessageValidator, parse_envelope, validate

__version__ = "0.1.0"
__all__ = [
    "VCCPServer",
    "SessionRegistry",
    "MessageRouter",
    "ActionDispatcher",
    "ControlPlane",
    "MessageValidator",
    "validate",
    "parse_envelope",
    "Envelope",
    "Kind",
    "Ack",
    "ToolResult",
    "SessionInfo",
    "SessionState",
    "VCCPError",
    "ValidationError",
    "ConfigError",
    "ConnectionError",
    "DispatchError",
    "UnknownSession",
    "AlreadyRegistered",
    "SessionBusy",
    "NotConnected",
    "SendFailure",
    "InvalidEnvelope",
]
