"""
Session models: lifecycle state and the read-only listing view.
"""

from enum import Enum

from pydantic import BaseModel


class SessionState(str, Enum):
    REGISTERED_NO_AGENT = "registered_no_agent"
    AGENT_ACTIVE = "agent_active"


class SessionInfo(BaseModel):
    id: str
    state: SessionState = SessionState.REGISTERED_NO_AGENT
    connected: bool = False
    has_capability: bool = False
    perception_categories: list[str] = []
    registered_at: str = ""
    updated_at: str = ""
