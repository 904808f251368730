"""
Category payload models: the known `data` shapes of the VCCP protocol.

The core treats payloads as opaque mappings. These models are an opt-in
extension point: hand a PayloadSchemas table to MessageValidator to enforce
them for specific (kind, category) pairs.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from vccp.models.envelope import CAPABILITY_CATEGORY, Envelope, Kind


class Vector3(BaseModel):
    x: float
    y: float
    z: float


class Resolution(BaseModel):
    width: float
    height: float


# -- actions -----------------------------------------------------------------

class MovementAction(BaseModel):
    """action/movement"""
    target: Vector3
    speed: float = 1.0


class LookAtTarget(BaseModel):
    type: Literal["position", "object"]
    value: Vector3


class LookAtAction(BaseModel):
    """action/lookAt"""
    target: LookAtTarget


ExpressionPreset = Literal[
    "a", "e", "i", "o", "u",
    "blink", "joy", "angry", "sorrow", "fun",
    "lookup", "lookdown", "lookleft", "lookright",
    "blink_l", "blink_r", "neutral",
]


class ExpressionAction(BaseModel):
    """action/expression"""
    preset: ExpressionPreset


class AnimAction(BaseModel):
    """action/anim: BVH motion data as text."""
    bvh: str


# -- perceptions -------------------------------------------------------------

class VisionPerception(BaseModel):
    """perception/vision"""
    image: str
    format: Literal["jpeg", "png"]
    resolution: Resolution
    fov: Optional[float] = None


class EnvironmentObject(BaseModel):
    id: str
    type: Literal["furniture", "person", "object"]
    name: str
    position: Vector3


class EnvironmentPerception(BaseModel):
    """perception/environment"""
    objects: list[EnvironmentObject]


class UserPerception(BaseModel):
    """perception/user"""
    position: Vector3
    activity: Optional[str] = None


# -- system ------------------------------------------------------------------

class CapabilityDeclaration(BaseModel):
    """system/capability: the action definitions an avatar accepts."""
    actions: list[Any]


class ConnectionStatus(BaseModel):
    """system/connection"""
    status: Literal["connected", "disconnected", "error"]
    clientId: str


class PayloadSchemas:
    """Maps (kind, category) to the model its payload must satisfy."""

    def __init__(self, schemas: Optional[dict[tuple[str, str], type[BaseModel]]] = None):
        self._schemas: dict[tuple[str, str], type[BaseModel]] = dict(schemas or {})

    def register(self, kind: str, category: str, model: type[BaseModel]) -> None:
        self._schemas[(kind, category)] = model

    def get(self, kind: str, category: str) -> Optional[type[BaseModel]]:
        return self._schemas.get((kind, category))

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def check(self, envelope: Envelope) -> Optional[str]:
        """Return a description of what is wrong with the payload, or None.

        Categories without a registered model always pass.
        """
        model = self.get(envelope.kind, envelope.category)
        if model is None:
            return None
        try:
            model.model_validate(envelope.payload)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(['data', *(str(p) for p in err['loc'])])}: {err['msg']}" for err in e.errors()
            )
            return f"{envelope.kind}/{envelope.category} payload invalid: {problems}"
        return None

    def copy(self) -> "PayloadSchemas":
        return PayloadSchemas(self._schemas)


DEFAULT_PAYLOAD_SCHEMAS = PayloadSchemas({
    (Kind.ACTION, "movement"): MovementAction,
    (Kind.ACTION, "lookAt"): LookAtAction,
    (Kind.ACTION, "expression"): ExpressionAction,
    (Kind.ACTION, "anim"): AnimAction,
    (Kind.PERCEPTION, "vision"): VisionPerception,
    (Kind.PERCEPTION, "environment"): EnvironmentPerception,
    (Kind.PERCEPTION, "user"): UserPerception,
    (Kind.SYSTEM, CAPABILITY_CATEGORY): CapabilityDeclaration,
    (Kind.SYSTEM, "connection"): ConnectionStatus,
})
