"""
Envelope construction and wire encoding.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional, Union

from vccp.models.envelope import CAPABILITY_CATEGORY, Envelope, Kind


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_envelope(
    kind: str,
    category: str,
    data: Optional[dict[str, Any]] = None,
    timestamp: Optional[str] = None,
) -> Envelope:
    """Build an envelope stamped with the current UTC time unless one is given.

    Raises pydantic.ValidationError if the arguments do not form a valid envelope.
    """
    return Envelope.model_validate({
        "type": kind,
        "category": category,
        "timestamp": timestamp or utc_now(),
        "data": data if data is not None else {},
    })


def build_action(category: str, data: Optional[dict[str, Any]] = None) -> Envelope:
    return build_envelope(Kind.ACTION, category, data)


def build_perception(category: str, data: Optional[dict[str, Any]] = None) -> Envelope:
    return build_envelope(Kind.PERCEPTION, category, data)


def build_capability(actions: list[Any]) -> Envelope:
    return build_envelope(Kind.SYSTEM, CAPABILITY_CATEGORY, {"actions": list(actions)})


def encode_envelope(envelope: Envelope) -> str:
    """Serialize to wire JSON text."""
    return json.dumps(envelope.to_wire(), ensure_ascii=False)


def decode_frame(raw: Union[bytes, bytearray, str]) -> Any:
    """Decode one inbound frame into a JSON value.

    Raises ValueError for frames that are not UTF-8 JSON, including JSON
    nested too deeply to decode.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    try:
        return json.loads(raw)
    except RecursionError:
        raise ValueError("frame nested too deeply")
