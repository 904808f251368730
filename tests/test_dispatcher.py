import json
import logging
from datetime import datetime

import pytest

from conftest import CAPABILITY, FakeConnection
from vccp.dispatcher import Ack
from vccp.errors import InvalidEnvelope, NotConnected, SendFailure, UnknownSession
from vccp.models.envelope import Envelope
from vccp.models.session import SessionState
from vccp.transport.envelope import build_action, encode_envelope

ACTION = {"type": "action", "category": "expression", "timestamp": "t2", "data": {"preset": "joy"}}


@pytest.mark.asyncio
async def test_send_to_active_agent(registry, router, dispatcher, connection):
    registry.register("s1")
    registry.bind("s1", connection)
    router.on_frame("s1", json.dumps(CAPABILITY))
    assert registry.get_state("s1") is SessionState.AGENT_ACTIVE

    action = build_action("expression", {"preset": "joy"})
    result = await dispatcher.send("s1", action)

    assert isinstance(result, Ack)
    assert result.session_id == "s1"
    assert result.category == "expression"
    assert connection.sent == [encode_envelope(action)]
    assert json.loads(connection.sent[0]) == action.to_wire()


@pytest.mark.asyncio
async def test_unknown_session(registry, dispatcher):
    registry.register("s1")
    before = registry.sessions()

    result = await dispatcher.send("unknown-id", build_action("expression", {"preset": "joy"}))

    assert isinstance(result, UnknownSession)
    assert registry.sessions() == before


@pytest.mark.asyncio
async def test_registered_but_unconnected(registry, dispatcher):
    registry.register("s1")
    result = await dispatcher.send("s1", build_action("movement"))
    assert isinstance(result, NotConnected)
    assert not isinstance(result, SendFailure)


@pytest.mark.asyncio
async def test_bound_without_capability(registry, dispatcher, connection):
    registry.register("s1")
    registry.bind("s1", connection)
    result = await dispatcher.send("s1", build_action("movement"))
    assert isinstance(result, NotConnected)
    assert connection.sent == []


@pytest.mark.asyncio
async def test_after_connection_closed(registry, dispatcher, active_session, connection):
    registry.unbind(active_session, connection)
    result = await dispatcher.send(active_session, build_action("movement"))
    assert isinstance(result, NotConnected)
    assert connection.sent == []


@pytest.mark.asyncio
async def test_dead_connection_evicted_lazily(registry, dispatcher, active_session, connection):
    connection.open = False
    result = await dispatcher.send(active_session, build_action("movement"))
    assert isinstance(result, NotConnected)
    assert registry.get_connection(active_session) is None
    assert registry.get_state(active_session) is SessionState.REGISTERED_NO_AGENT


@pytest.mark.asyncio
async def test_write_failure_unbinds(registry, router, dispatcher):
    broken = FakeConnection(fail=True)
    registry.register("s1")
    registry.bind("s1", broken)
    router.on_frame("s1", json.dumps(CAPABILITY))

    result = await dispatcher.send("s1", build_action("movement"))

    assert isinstance(result, SendFailure)
    assert isinstance(result, NotConnected)
    assert "broken pipe" in result.message
    assert registry.get_connection("s1") is None
    assert registry.get_state("s1") is SessionState.REGISTERED_NO_AGENT

    again = await dispatcher.send("s1", build_action("movement"))
    assert type(again) is NotConnected


@pytest.mark.asyncio
async def test_raw_dict_is_validated(dispatcher, active_session, connection):
    result = await dispatcher.send(active_session, ACTION)
    assert isinstance(result, Ack)
    assert json.loads(connection.sent[0]) == ACTION


@pytest.mark.asyncio
async def test_malformed_envelope_rejected(registry, dispatcher, active_session, connection):
    result = await dispatcher.send(active_session, {**ACTION, "data": "joy"})
    assert isinstance(result, InvalidEnvelope)
    assert connection.sent == []
    assert registry.get_state(active_session) is SessionState.AGENT_ACTIVE


@pytest.mark.asyncio
async def test_failure_isolated_to_one_session(registry, router, dispatcher):
    healthy, broken = FakeConnection(), FakeConnection(fail=True)
    for sid, conn in (("a", healthy), ("b", broken)):
        registry.register(sid)
        registry.bind(sid, conn)
        router.on_frame(sid, json.dumps(CAPABILITY))

    assert isinstance(await dispatcher.send("b", ACTION), SendFailure)
    assert isinstance(await dispatcher.send("a", ACTION), Ack)
    assert registry.get_state("a") is SessionState.AGENT_ACTIVE


@pytest.mark.asyncio
async def test_non_json_payload_rejected(registry, dispatcher, active_session, connection):
    result = await dispatcher.send(active_session, {**ACTION, "data": {"at": datetime(2024, 1, 1)}})
    assert isinstance(result, InvalidEnvelope)
    assert connection.sent == []
    assert registry.get_state(active_session) is SessionState.AGENT_ACTIVE


@pytest.mark.asyncio
async def test_unserializable_envelope_returned_as_error(registry, dispatcher, active_session, connection):
    unchecked = Envelope.model_construct(type="action", category="expression", timestamp="t", data={"tags": {1, 2}})

    result = await dispatcher.send(active_session, unchecked)

    assert isinstance(result, InvalidEnvelope)
    assert "JSON" in result.message
    assert connection.sent == []
    assert registry.get_connection(active_session) is connection


@pytest.mark.asyncio
async def test_write_failure_logged_with_session(registry, router, dispatcher, caplog):
    registry.register("s1")
    registry.bind("s1", FakeConnection(fail=True))
    router.on_frame("s1", json.dumps(CAPABILITY))

    with caplog.at_level(logging.WARNING, logger="vccp.dispatcher"):
        await dispatcher.send("s1", ACTION)

    record = caplog.records[-1]
    assert record.args[0] == "s1"
    assert record.getMessage() == "Send to session s1 failed: broken pipe"
