import json
from datetime import datetime

import pytest

from vccp.errors import ValidationError
from vccp.models.categories import DEFAULT_PAYLOAD_SCHEMAS
from vccp.models.envelope import Envelope
from vccp.transport.envelope import encode_envelope
from vccp.validator import MessageValidator, parse_envelope, validate

VALID = {"type": "action", "category": "expression", "timestamp": "2024-01-01T00:00:00Z", "data": {"preset": "joy"}}


def test_valid_envelope():
    env = validate(VALID)
    assert isinstance(env, Envelope)
    assert env.kind == "action"
    assert env.category == "expression"
    assert env.payload == {"preset": "joy"}


@pytest.mark.parametrize("kind", ["perception", "action", "system"])
def test_all_kinds_accepted(kind):
    assert isinstance(validate({**VALID, "type": kind}), Envelope)


@pytest.mark.parametrize("raw", [
    {**VALID, "type": "command"},
    {**VALID, "category": 3},
    {**VALID, "category": ""},
    {**VALID, "timestamp": 1700000000},
    {**VALID, "data": [1, 2]},
    {**VALID, "data": "joy"},
    {**VALID, "data": None},
    {k: v for k, v in VALID.items() if k != "data"},
    {k: v for k, v in VALID.items() if k != "type"},
])
def test_malformed_envelopes_rejected(raw):
    result = validate(raw)
    assert isinstance(result, ValidationError)
    assert result.message


@pytest.mark.parametrize("raw", [None, 42, "text", [VALID], True])
def test_non_objects_rejected_without_raising(raw):
    result = validate(raw)
    assert isinstance(result, ValidationError)
    assert "JSON object" in result.message


def test_error_names_wire_field():
    result = validate({**VALID, "data": []})
    assert "data" in result.message


def test_extra_fields_ignored():
    env = validate({**VALID, "id": "x", "extra": {"a": 1}})
    assert isinstance(env, Envelope)
    assert set(env.to_wire()) == {"type", "category", "timestamp", "data"}


def test_validation_is_idempotent_over_json():
    raws = [
        VALID,
        {"type": "perception", "category": "user", "timestamp": "t", "data": {"position": {"x": 1, "y": 2.5, "z": 0}}},
        {"type": "system", "category": "capability", "timestamp": "t0", "data": {"actions": [], "名前": "ミク"}},
    ]
    for raw in raws:
        first = validate(raw)
        second = validate(json.loads(encode_envelope(first)))
        assert second == first


def test_envelope_is_immutable():
    env = validate(VALID)
    with pytest.raises(Exception):
        env.category = "other"


def test_parse_envelope():
    assert parse_envelope(VALID) is not None
    assert parse_envelope({"type": "nope"}) is None


def test_payload_schemas_are_opt_in():
    bad_preset = {**VALID, "data": {"preset": "smirk"}}
    assert isinstance(MessageValidator().validate(bad_preset), Envelope)

    result = MessageValidator(DEFAULT_PAYLOAD_SCHEMAS).validate(bad_preset)
    assert isinstance(result, ValidationError)
    assert "action/expression" in result.message
    assert "data.preset" in result.message


def test_payload_schemas_ignore_unknown_categories():
    validator = MessageValidator(DEFAULT_PAYLOAD_SCHEMAS)
    custom = {**VALID, "category": "wave", "data": {"hand": "left"}}
    assert isinstance(validator(custom), Envelope)


def test_payload_schemas_accept_known_payload():
    validator = MessageValidator(DEFAULT_PAYLOAD_SCHEMAS)
    move = {**VALID, "category": "movement", "data": {"target": {"x": 1, "y": 0, "z": -2}}}
    assert isinstance(validator.validate(move), Envelope)


def test_python_field_names_are_not_wire_names():
    raw = {"kind": "action", "category": "expression", "timestamp": "t", "payload": {}}
    assert isinstance(validate(raw), ValidationError)


@pytest.mark.parametrize("data", [
    {"at": datetime(2024, 1, 1)},
    {"nested": {"obj": object()}},
])
def test_non_json_payload_values_rejected(data):
    result = validate({**VALID, "data": data})
    assert isinstance(result, ValidationError)
    assert "data" in result.message


def test_json_payload_values_round_trip():
    data = {"n": 1, "x": 1.5, "ok": True, "none": None, "items": [1, "a", {"b": []}]}
    env = validate({**VALID, "data": data})
    assert validate(json.loads(encode_envelope(env))) == env


def test_set_payload_never_breaks_encoding():
    result = validate({**VALID, "data": {"tags": {1, 2}}})
    if isinstance(result, Envelope):
        assert validate(json.loads(encode_envelope(result))) == result
    else:
        assert "data" in result.message
