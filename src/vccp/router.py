"""
Inbound frame router for the data plane.

One call per physical frame. Frames are decoded, validated and folded into
the registry; nothing is ever sent back. Undecodable or invalid frames and
frames for unknown sessions are logged and dropped.
"""

import logging
from typing import Optional, Union

from vccp.errors import UnknownSession, ValidationError
from vccp.models.envelope import Envelope, Kind
from vccp.registry import SessionRegistry
from vccp.transport.envelope import decode_frame
from vccp.validator import MessageValidator

logger = logging.getLogger(__name__)


class MessageRouter:
    def __init__(self, registry: SessionRegistry, validator: Optional[MessageValidator] = None):
        self._registry = registry
        self._validator = validator or MessageValidator()

    def on_frame(self, session_id: str, raw: Union[bytes, bytearray, str]) -> None:
        try:
            decoded = decode_frame(raw)
        except ValueError as e:
            logger.warning("Dropping undecodable frame from session %s: %s", session_id, e)
            return

        result = self._validator.validate(decoded)
        if isinstance(result, ValidationError):
            logger.warning("Dropping invalid envelope from session %s: %s", session_id, result.message)
            return

        try:
            self.route(session_id, result)
        except UnknownSession:
            logger.warning("Dropping frame for unknown session %s", session_id)

    def route(self, session_id: str, envelope: Envelope) -> None:
        """Fold a validated envelope into registry state by (kind, category)."""
        if envelope.is_capability:
            self._registry.on_capability_declared(session_id, envelope)
        elif envelope.kind == Kind.PERCEPTION:
            if self._registry.record_perception(session_id, envelope):
                logger.debug("Stored perception %s for session %s", envelope.category, session_id)
            else:
                logger.debug("Dropped perception %s for session %s: no capability yet", envelope.category, session_id)
        else:
            logger.debug("Ignoring %s/%s from session %s", envelope.kind, envelope.category, session_id)
