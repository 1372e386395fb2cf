"""Tests for dual-schema decoding and omit-if-absent encoding."""

import json

import pytest
from pydantic import ValidationError

from agentworld.codec import Unparsed, decode, decode_action, encode
from agentworld.schemas import Action, ActionAck, Coordinate, Observation, TileType

from conftest import observation_bytes, observation_payload


ACK_BYTES = json.dumps(
    {
        "data": {"currentTileType": "grass", "x": "4", "y": "5"},
        "message": "Moved",
        "responseType": "action",
    }
).encode("utf-8")


def test_decode_observation():
    message = decode(observation_bytes(3, 7, tiles=[(3, 6, "forest")], agents=[("other", 4, 7)], time_step=12))

    assert isinstance(message, Observation)
    assert message.time_step == 12
    assert message.current_location.x == 3
    assert message.surroundings.tiles[0].type is TileType.FOREST
    assert message.surroundings.agents[0].agent_id == "other"


def test_decode_action_ack_keeps_string_coordinates():
    message = decode(ACK_BYTES)

    assert isinstance(message, ActionAck)
    assert message.data.x == "4"
    assert message.data.y == "5"
    assert message.message == "Moved"


def test_ack_with_integer_coordinates_is_not_an_ack():
    raw = json.dumps(
        {"data": {"currentTileType": "grass", "x": 4, "y": 5}, "message": "m", "responseType": "action"}
    ).encode()

    assert isinstance(decode(raw), Unparsed)


def test_observation_with_string_coordinates_is_rejected():
    payload = observation_payload()
    payload["currentLocation"]["x"] = "5"

    assert isinstance(decode(json.dumps(payload).encode()), Unparsed)


def test_payload_matching_both_schemas_resolves_to_ack():
    payload = observation_payload()
    payload.update(
        {"data": {"currentTileType": "grass", "x": "5", "y": "5"}, "message": "both"}
    )

    assert isinstance(decode(json.dumps(payload).encode()), ActionAck)


def test_unknown_tile_type_decodes_as_desert():
    message = decode(observation_bytes(tile_type="lava", tiles=[(5, 4, "swamp")]))

    assert isinstance(message, Observation)
    assert message.current_location.type is TileType.DESERT
    assert message.surroundings.tiles[0].type is TileType.DESERT


@pytest.mark.parametrize(
    "raw",
    [b"not json at all", b"", b"{\"hello\": \"world\"}", b"[1, 2, 3]", b"\xff\xfe\x00binary"],
)
def test_non_matching_bytes_are_unparsed(raw):
    message = decode(raw)

    assert isinstance(message, Unparsed)
    assert message.raw == raw


def test_decode_is_pure():
    raw = observation_bytes(tiles=[(4, 5, "grass")])

    assert decode(raw) == decode(raw)
    assert decode(b"garbage") == decode(b"garbage")


def test_unparsed_preview_text_and_binary():
    assert Unparsed(b"hello").preview() == "hello"
    binary = Unparsed(bytes(range(0xF0, 0x100)))
    assert binary.preview().startswith("16 bytes: f0 f1 f2")


def test_encode_omits_absent_fields():
    assert json.loads(encode(Action())) == {"action": "move"}
    assert json.loads(encode(Action.move(1, 2))) == {"action": "move", "targetTile": {"x": 1, "y": 2}}
    assert b"null" not in encode(Action(message=None, target_tile=None))


def test_encode_includes_message_when_present():
    payload = json.loads(encode(Action.move(0, -1, message="Staying put")))

    assert payload == {"action": "move", "targetTile": {"x": 0, "y": -1}, "message": "Staying put"}


@pytest.mark.parametrize(
    "wire",
    [
        {"action": "move"},
        {"action": "move", "targetTile": {"x": 3, "y": 4}},
        {"action": "move", "message": "hi"},
        {"action": "move", "targetTile": {"x": -1, "y": 0}, "message": "hi"},
    ],
)
def test_action_round_trip_preserves_omitted_fields(wire):
    raw = json.dumps(wire).encode()

    assert json.loads(encode(decode_action(raw))) == wire


def test_decode_action_rejects_unknown_action():
    with pytest.raises(ValidationError):
        decode_action(b'{"action": "fly"}')


def test_action_target_is_coordinate():
    action = decode_action(b'{"action": "move", "targetTile": {"x": 3, "y": 4}}')

    assert action.target_tile == Coordinate(x=3, y=4)
