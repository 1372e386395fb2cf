"""
Pydantic schemas for the AgentWorld client.

Every message exchanged with the simulation server, every structured LLM reply
and every stored memory record is defined here.

Design notes:
- Python attributes are snake_case; wire names are kept as aliases so the
  models validate server JSON as-is and serialize back with ``by_alias=True``.
- Coordinates in observations are strict integers while the action
  acknowledgement carries them as strict strings. The two schemas are told
  apart by that asymmetry, so neither side coerces.
- Unknown tile type strings collapse to ``desert`` rather than failing.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictInt, StrictStr


# ============================================================================
# World Schemas
# ============================================================================


class TileType(str, Enum):
    """Terrain of a single world tile."""

    DESERT = "desert"
    WATER = "water"
    GRASS = "grass"
    FOREST = "forest"
    MOUNTAIN = "mountain"
    SNOW = "snow"


# Terrain an agent can never enter.
BLOCKED_TERRAIN = frozenset({TileType.WATER, TileType.MOUNTAIN})


def _lenient_tile_type(value: Any) -> Any:
    """Map unknown terrain names to desert; leave non-strings for validation to reject."""
    if isinstance(value, TileType):
        return value
    if isinstance(value, str):
        try:
            return TileType(value).value
        except ValueError:
            return TileType.DESERT.value
    return value


TileTypeField = Annotated[TileType, BeforeValidator(_lenient_tile_type)]


class WireModel(BaseModel):
    """Base for models whose field names differ between Python and the wire."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Coordinate(BaseModel):
    """Integer grid position."""

    x: StrictInt
    y: StrictInt

    def as_tuple(self) -> tuple[int, int]:
        return (self.x, self.y)


class Location(BaseModel):
    """The agent's current tile as reported in an observation."""

    x: StrictInt
    y: StrictInt
    type: TileTypeField

    def coordinate(self) -> Coordinate:
        return Coordinate(x=self.x, y=self.y)


class Tile(BaseModel):
    """A visible tile in the agent's surroundings."""

    x: StrictInt
    y: StrictInt
    type: TileTypeField


class AgentSummary(BaseModel):
    """Another agent visible from the current location."""

    agent_id: StrictStr
    x: StrictInt
    y: StrictInt


class Surroundings(BaseModel):
    """Tiles and agents visible from the current location."""

    tiles: List[Tile]
    agents: List[AgentSummary]

    def tile_at(self, x: int, y: int) -> Optional[Tile]:
        """Return the visible tile at (x, y), or None when it is not in view."""
        for tile in self.tiles:
            if tile.x == x and tile.y == y:
                return tile
        return None


# ============================================================================
# Inbound Messages
# ============================================================================


class Observation(WireModel):
    """Periodic server message describing what the agent currently sees."""

    agent_id: StrictStr
    time_step: StrictInt = Field(..., alias="timeStep")
    current_location: Location = Field(..., alias="currentLocation")
    surroundings: Surroundings
    response_type: StrictStr = Field(..., alias="responseType")

    @property
    def is_observation(self) -> bool:
        return self.response_type == "observation"


class ActionAckData(WireModel):
    """Position report inside an action acknowledgement (coordinates as strings)."""

    current_tile_type: StrictStr = Field(..., alias="currentTileType")
    x: StrictStr
    y: StrictStr


class ActionAck(WireModel):
    """Server reply confirming (or rejecting) the last action."""

    data: ActionAckData
    message: StrictStr
    response_type: StrictStr = Field(..., alias="responseType")


# ============================================================================
# Outbound Messages
# ============================================================================


class ActionType(str, Enum):
    MOVE = "move"


class Action(WireModel):
    """Action sent back to the server.

    Optional fields are omitted from the wire payload when absent; they are
    never sent as ``null``.
    """

    action: ActionType = ActionType.MOVE
    target_tile: Optional[Coordinate] = Field(None, alias="targetTile")
    message: Optional[str] = None

    @classmethod
    def move(cls, x: int, y: int, message: Optional[str] = None) -> "Action":
        return cls(action=ActionType.MOVE, target_tile=Coordinate(x=x, y=y), message=message)

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"action": self.action.value}
        if self.target_tile is not None:
            payload["targetTile"] = {"x": self.target_tile.x, "y": self.target_tile.y}
        if self.message is not None:
            payload["message"] = self.message
        return payload


# ============================================================================
# LLM Response Schemas
# ============================================================================


class MoveProposal(WireModel):
    """Structured move suggested by the LLM.

    ``reason`` is kept for logging and memory generation only; it is never
    forwarded to the server.
    """

    action: str = "move"
    target_tile: Coordinate = Field(..., alias="targetTile")
    reason: Optional[str] = None

    def to_action(self) -> Action:
        return Action(action=ActionType.MOVE, target_tile=self.target_tile)


class MemoryGenerationResponse(BaseModel):
    """Envelope the summarization prompt asks the LLM to answer with."""

    memories: List[str] = Field(default_factory=list)


# ============================================================================
# Memory Schemas
# ============================================================================


class MemoryType(str, Enum):
    REGULAR = "regular"
    CONVERSATION = "conversation"
    SPATIAL = "spatial"
    REFLECTION = "reflection"
    ACTION = "action"


def _new_memory_id() -> str:
    return str(uuid.uuid4())


def _epoch_seconds() -> int:
    return int(time.time())


class Memory(WireModel):
    """Durable textual record of something perceived, decided or reflected upon.

    ``links`` holds a serialized list of related memory ids; an empty string
    means no links.
    """

    unique_id: str = Field(default_factory=_new_memory_id, alias="uniqueId")
    memory_type: MemoryType = Field(MemoryType.REGULAR, alias="memoryType")
    timestamp: int = Field(default_factory=_epoch_seconds)
    text_content: str = Field(..., alias="textContent")
    links: str = ""


__all__ = [
    "TileType",
    "BLOCKED_TERRAIN",
    "Coordinate",
    "Location",
    "Tile",
    "AgentSummary",
    "Surroundings",
    "Observation",
    "ActionAckData",
    "ActionAck",
    "ActionType",
    "Action",
    "MoveProposal",
    "MemoryGenerationResponse",
    "MemoryType",
    "Memory",
]
