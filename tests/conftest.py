import pytest

from vccp.dispatcher import ActionDispatcher
from vccp.registry import SessionRegistry
from vccp.router import MessageRouter
from vccp.tools import ControlPlane

CAPABILITY = {"type": "system", "category": "capability", "timestamp": "t0", "data": {"actions": []}}


class FakeConnection:
    """In-memory stand-in for a data-plane connection."""

    def __init__(self, fail: bool = False):
        self.sent: list[str] = []
        self.open = True
        self.fail = fail
        self.closed_with = None

    @property
    def is_open(self) -> bool:
        return self.open

    async def send(self, message: str) -> None:
        if self.fail:
            raise OSError("broken pipe")
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.open = False
        self.closed_with = (code, reason)


def perception(category: str, **data):
    return {"type": "perception", "category": category, "timestamp": "t1", "data": data}


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def router(registry):
    return MessageRouter(registry)


@pytest.fixture
def dispatcher(registry):
    return ActionDispatcher(registry)


@pytest.fixture
def control(registry, dispatcher):
    return ControlPlane(registry, dispatcher)


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def active_session(registry, router, connection):
    """Session "s1" bound to `connection` with capability declared."""
    registry.register("s1")
    registry.bind("s1", connection)
    router.on_frame("s1", '{"type":"system","category":"capability","timestamp":"t0","data":{"actions":[]}}')
    return "s1"
