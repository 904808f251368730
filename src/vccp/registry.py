"""
Session registry: the single source of truth for avatar sessions.

Lifecycle per session:

    REGISTERED_NO_AGENT --[system/capability received]--> AGENT_ACTIVE
    AGENT_ACTIVE --[connection closed / error / send failure]--> REGISTERED_NO_AGENT

A session is created only by register() and may cycle between the two states
indefinitely as its avatar reconnects. At most one connection is bound to a
session at any time: bind() rejects a second connection while the first one
is still open, and supersedes it once it is closed.

Every operation on an id that was never registered raises UnknownSession.
All reads and mutations run under one coarse lock, and none of them awaits,
so the registry is safe both on a single event loop and across threads.
"""

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Protocol

from vccp.errors import AlreadyRegistered, SessionBusy, UnknownSession
from vccp.models.envelope import Envelope, Kind
from vccp.models.session import SessionInfo, SessionState

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """The data-plane side of a session, as seen by the registry and dispatcher."""

    @property
    def is_open(self) -> bool: ...

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Session:
    __slots__ = ("id", "state", "connection", "capability", "perceptions", "registered_at", "updated_at")

    def __init__(self, id: str):
        self.id = id
        self.state = SessionState.REGISTERED_NO_AGENT
        self.connection: Optional[Connection] = None
        self.capability: Optional[Envelope] = None
        self.perceptions: dict[str, Envelope] = {}
        self.registered_at = _now()
        self.updated_at = self.registered_at

    @property
    def connected(self) -> bool:
        return self.connection is not None and self.connection.is_open

    def touch(self) -> None:
        self.updated_at = _now()

    def detach(self) -> None:
        """Drop the connection and end the current agent epoch.

        Capability is cleared so a disconnected avatar never looks ready;
        perceptions stay until the next capability declaration resets them.
        """
        self.connection = None
        self.capability = None
        self.state = SessionState.REGISTERED_NO_AGENT
        self.touch()

    def info(self) -> SessionInfo:
        return SessionInfo(
            id=self.id,
            state=self.state,
            connected=self.connected,
            has_capability=self.capability is not None,
            perception_categories=sorted(self.perceptions),
            registered_at=self.registered_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, state={self.state.value!r})"


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def contains(self, session_id: str) -> bool:
        return session_id in self

    def _get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSession(session_id)
        return session

    # -- control plane -------------------------------------------------------

    def register(self, session_id: str) -> None:
        """Create a session with no connection, capability or perceptions.

        Raises AlreadyRegistered, leaving the existing session untouched.
        """
        with self._lock:
            if session_id in self._sessions:
                raise AlreadyRegistered(session_id)
            self._sessions[session_id] = Session(session_id)
        logger.info("Registered session %s", session_id)

    def remove(self, session_id: str) -> Optional[Connection]:
        """Forget a session. Returns its bound connection, if any, for the caller to close."""
        with self._lock:
            session = self._get(session_id)
            del self._sessions[session_id]
        logger.info("Removed session %s", session_id)
        return session.connection

    def get_state(self, session_id: str) -> SessionState:
        with self._lock:
            return self._get(session_id).state

    def get_connection(self, session_id: str) -> Optional[Connection]:
        with self._lock:
            return self._get(session_id).connection

    def get_capability(self, session_id: str) -> Optional[dict]:
        """Payload of the declared capability, or None before declaration."""
        with self._lock:
            capability = self._get(session_id).capability
            return copy.deepcopy(capability.payload) if capability is not None else None

    def get_perceptions(self, session_id: str) -> list[Envelope]:
        """Copies of the latest perception per category. Order is unspecified."""
        with self._lock:
            return [envelope.model_copy(deep=True) for envelope in self._get(session_id).perceptions.values()]

    def get_info(self, session_id: str) -> SessionInfo:
        with self._lock:
            return self._get(session_id).info()

    def sessions(self) -> list[SessionInfo]:
        with self._lock:
            return [session.info() for session in self._sessions.values()]

    def active_connection(self, session_id: str) -> Optional[Connection]:
        """The connection an action may be written to, or None.

        A bound connection that is no longer open is evicted here; liveness is
        only ever discovered at send time.
        """
        with self._lock:
            session = self._get(session_id)
            connection = session.connection
            if connection is not None and not connection.is_open:
                logger.info("Evicting closed connection for session %s", session_id)
                session.detach()
                return None
            if session.state is not SessionState.AGENT_ACTIVE:
                return None
            return connection

    # -- data plane ----------------------------------------------------------

    def bind(self, session_id: str, connection: Connection) -> None:
        """Attach a newly accepted connection. Does not change state.

        Raises UnknownSession, or SessionBusy if another connection is still open.
        """
        with self._lock:
            session = self._get(session_id)
            current = session.connection
            if current is connection:
                return
            if current is not None:
                if current.is_open:
                    raise SessionBusy(session_id)
                logger.info("Superseding closed connection for session %s", session_id)
                session.detach()
            session.connection = connection
            session.touch()
        logger.info("Bound connection to session %s", session_id)

    def unbind(self, session_id: str, connection: Optional[Connection] = None) -> None:
        """Detach the connection after close, error or a failed send.

        With ``connection`` given, only that connection is detached; a late close
        of a superseded connection leaves the current one alone.
        """
        with self._lock:
            session = self._get(session_id)
            if connection is not None and session.connection is not connection:
                return
            was_active = session.state is SessionState.AGENT_ACTIVE
            session.detach()
        if was_active:
            logger.info("Session %s: agent inactive", session_id)

    def on_capability_declared(self, session_id: str, envelope: Envelope) -> None:
        """Start a new agent epoch: store capability and discard old perceptions."""
        with self._lock:
            session = self._get(session_id)
            session.capability = envelope
            session.perceptions = {}
            session.state = SessionState.AGENT_ACTIVE
            session.touch()
        logger.info("Session %s: agent active", session_id)

    def record_perception(self, session_id: str, envelope: Envelope) -> bool:
        """Store the latest perception of its category.

        Returns False (and stores nothing) until capability has been declared.
        """
        if envelope.kind != Kind.PERCEPTION:
            raise ValueError(f"expected a perception envelope, got {envelope.kind}")
        with self._lock:
            session = self._get(session_id)
            if session.state is not SessionState.AGENT_ACTIVE:
                return False
            session.perceptions[envelope.category] = envelope
            session.touch()
        return True
