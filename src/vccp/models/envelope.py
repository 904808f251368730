"""
VCCP envelope: the atomic message shared by the control and data planes.

Wire shape: {"type": ..., "category": ..., "timestamp": ..., "data": {...}}
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue

EnvelopeKind = Literal["perception", "action", "system"]


class Kind:
    PERCEPTION = "perception"
    ACTION = "action"
    SYSTEM = "system"


CAPABILITY_CATEGORY = "capability"


class Envelope(BaseModel):
    """A validated envelope. Immutable; ``payload`` is never rewritten by routing."""

    model_config = ConfigDict(frozen=True, strict=True, extra="ignore")

    kind: EnvelopeKind = Field(alias="type")
    category: str = Field(min_length=1)
    timestamp: str  # ISO-8601, producer-supplied
    payload: dict[str, JsonValue] = Field(alias="data")

    @property
    def is_capability(self) -> bool:
        return self.kind == Kind.SYSTEM and self.category == CAPABILITY_CATEGORY

    def to_wire(self) -> dict[str, Any]:
        """Dump with wire field names, exactly the four protocol keys."""
        return self.model_dump(by_alias=True)
