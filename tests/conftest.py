"""Shared builders for observations and server payloads."""

from __future__ import annotations

import json
from typing import Iterable, Tuple

import pytest

from agentworld.schemas import Observation


def observation_payload(
    x: int = 5,
    y: int = 5,
    *,
    tile_type: str = "grass",
    tiles: Iterable[Tuple[int, int, str]] = (),
    agents: Iterable[Tuple[str, int, int]] = (),
    time_step: int = 1,
    response_type: str = "observation",
    agent_id: str = "agent-1",
) -> dict:
    return {
        "agent_id": agent_id,
        "currentLocation": {"x": x, "y": y, "type": tile_type},
        "timeStep": time_step,
        "surroundings": {
            "tiles": [{"x": tx, "y": ty, "type": tt} for tx, ty, tt in tiles],
            "agents": [{"agent_id": aid, "x": ax, "y": ay} for aid, ax, ay in agents],
        },
        "responseType": response_type,
    }


def make_observation(*args, **kwargs) -> Observation:
    return Observation.model_validate(observation_payload(*args, **kwargs))


def observation_bytes(*args, **kwargs) -> bytes:
    return json.dumps(observation_payload(*args, **kwargs)).encode("utf-8")


# Scenario used across tests: two legal orthogonal neighbours, two water tiles.
SCENARIO_A_TILES = (
    (4, 5, "grass"),
    (6, 5, "water"),
    (5, 4, "forest"),
    (5, 6, "water"),
)


@pytest.fixture
def scenario_a() -> Observation:
    return make_observation(5, 5, tiles=SCENARIO_A_TILES)


@pytest.fixture
def full_neighbourhood() -> Observation:
    """All eight neighbours plus the current tile, mixed terrain."""
    tiles = [
        (4, 4, "grass"),
        (5, 4, "mountain"),
        (6, 4, "water"),
        (4, 5, "forest"),
        (5, 5, "grass"),
        (6, 5, "snow"),
        (4, 6, "desert"),
        (5, 6, "water"),
        (6, 6, "grass"),
    ]
    return make_observation(5, 5, tiles=tiles)
