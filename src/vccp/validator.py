"""
Envelope validation.

validate() is pure: it never raises for malformed input and returns either the
validated Envelope or a ValidationError describing what was wrong.
"""

from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from vccp.errors import ValidationError
from vccp.models.categories import PayloadSchemas
from vccp.models.envelope import Envelope


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<envelope>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate(raw: Any) -> Union[Envelope, ValidationError]:
    """Validate a decoded JSON value against the envelope shape."""
    if isinstance(raw, Envelope):
        return raw
    if not isinstance(raw, dict):
        return ValidationError(f"envelope must be a JSON object, got {type(raw).__name__}")
    try:
        return Envelope.model_validate(raw)
    except PydanticValidationError as e:
        return ValidationError(_describe(e), details={"errors": e.errors(include_url=False)})


def parse_envelope(raw: Any) -> Optional[Envelope]:
    """Validate and return the Envelope, or None if invalid."""
    result = validate(raw)
    if isinstance(result, ValidationError):
        return None
    return result


class MessageValidator:
    """validate() plus optional per-category payload checks."""

    def __init__(self, payload_schemas: Optional[PayloadSchemas] = None):
        self._payload_schemas = payload_schemas

    @property
    def payload_schemas(self) -> Optional[PayloadSchemas]:
        return self._payload_schemas

    def validate(self, raw: Any) -> Union[Envelope, ValidationError]:
        result = validate(raw)
        if isinstance(result, ValidationError) or self._payload_schemas is None:
            return result
        problem = self._payload_schemas.check(result)
        if problem is not None:
            return ValidationError(problem, details={"kind": result.kind, "category": result.category})
        return result

    __call__ = validate
