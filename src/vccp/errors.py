"""
VCCP error types: one hierarchy shared by the registry, router and dispatcher.
"""

from typing import Any, Optional


class VCCPError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class ValidationError(VCCPError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("validation_error", message, details)


class ConfigError(VCCPError):
    def __init__(self, message: str):
        super().__init__("config_error", message)


class ConnectionError(VCCPError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)


class SessionError(VCCPError):
    """Base for errors tied to one session id."""

    def __init__(self, session_id: str, message: str, code: str = "session_error"):
        super().__init__(code, message, {"session_id": session_id})
        self.session_id = session_id


class AlreadyRegistered(SessionError):
    def __init__(self, session_id: str):
        super().__init__(session_id, f"Session already registered: {session_id}", "already_registered")


class SessionBusy(SessionError):
    def __init__(self, session_id: str):
        super().__init__(session_id, f"Session already has a live connection: {session_id}", "session_busy")


class DispatchError(VCCPError):
    """Failure value returned by ActionDispatcher.send."""


class UnknownSession(SessionError, DispatchError):
    def __init__(self, session_id: str):
        super().__init__(session_id, f"Unknown session: {session_id}", "unknown_session")


class NotConnected(SessionError, DispatchError):
    def __init__(self, session_id: str, message: Optional[str] = None, code: str = "not_connected"):
        super().__init__(session_id, message or f"No client connected for session: {session_id}", code)


class SendFailure(NotConnected):
    def __init__(self, session_id: str, cause: BaseException):
        super().__init__(
            session_id,
            f"Failed to send action to session {session_id}: {cause}",
            "send_failure",
        )
        self.cause = cause


class InvalidEnvelope(DispatchError):
    def __init__(self, message: str):
        super().__init__("invalid_envelope", f"Invalid envelope: {message}")
