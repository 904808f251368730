"""
Action dispatcher: sends one action envelope to one live avatar connection.

send() always returns a value: an Ack when the frame was written, otherwise
the DispatchError explaining why not. Failures are never retried. A write
that raises unbinds the connection so later sends fail fast with NotConnected.

An Ack means the frame left this process; the protocol has no
application-level acknowledgment.
"""

import logging
from typing import Any, Optional, Union

from pydantic import BaseModel

from vccp.errors import DispatchError, InvalidEnvelope, NotConnected, SendFailure, UnknownSession, ValidationError
from vccp.models.envelope import Envelope
from vccp.registry import SessionRegistry
from vccp.transport.envelope import encode_envelope, utc_now
from vccp.validator import MessageValidator

logger = logging.getLogger(__name__)


class Ack(BaseModel):
    session_id: str
    category: str
    sent_at: str

    @property
    def message(self) -> str:
        return f"Action sent to session: {self.session_id}"


class ActionDispatcher:
    def __init__(self, registry: SessionRegistry, validator: Optional[MessageValidator] = None):
        self._registry = registry
        self._validator = validator or MessageValidator()

    async def send(self, session_id: str, envelope: Union[Envelope, Any]) -> Union[Ack, DispatchError]:
        checked = self._validator.validate(envelope)
        if isinstance(checked, ValidationError):
            return InvalidEnvelope(checked.message)

        try:
            connection = self._registry.active_connection(session_id)
        except UnknownSession as e:
            return e
        if connection is None:
            return NotConnected(session_id)

        try:
            text = encode_envelope(checked)
        except (TypeError, ValueError) as e:
            return InvalidEnvelope(f"payload is not JSON serializable: {e}")

        try:
            await connection.send(text)
        except Exception as e:
            logger.warning("Send to session %s failed: %s", session_id, e)
            try:
                self._registry.unbind(session_id, connection)
            except UnknownSession:
                pass  # removed while the write was in flight
            return SendFailure(session_id, e)

        logger.debug("Action %s sent to session %s", checked.category, session_id)
        return Ack(session_id=session_id, category=checked.category, sent_at=utc_now())
