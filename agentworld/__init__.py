"""
AgentWorld - client agent for the AgentWorld simulation server.

Keeps one TCP connection to the server, answers each observation with a
legal move chosen at random or by an LLM, and records short memories of
its reasoning. All dependencies are injected; see ``agentworld.cli`` for
the default wiring.
"""

__version__ = "1.0.0"

from .agent import Agent
from .codec import Unparsed, decode, encode
from .config import AgentConfig
from .connection import ConnectError, ConnectionManager, StreamClosed, TransportError
from .decision import (
    DecisionEngine,
    DecisionState,
    LLMStrategy,
    MoveCheck,
    RandomStrategy,
    Strategy,
    check_move,
)
from .llm_client import (
    LLMClient,
    LLMDecodeError,
    LLMError,
    LLMHTTPError,
    LLMResponseError,
    LLMTransportError,
)
from .memory import MemoryStore
from .persistence import (
    InMemoryPersistence,
    JsonPersistence,
    MemoryPersistence,
    SqlitePersistence,
    StorageError,
)
from .schemas import (
    Action,
    ActionAck,
    ActionType,
    AgentSummary,
    Coordinate,
    Location,
    Memory,
    MemoryType,
    MoveProposal,
    Observation,
    Surroundings,
    Tile,
    TileType,
)
from .traits import load_traits

__all__ = [
    # Main loop
    "Agent",
    "AgentConfig",
    # Transport
    "ConnectionManager",
    "ConnectError",
    "StreamClosed",
    "TransportError",
    # Codec
    "decode",
    "encode",
    "Unparsed",
    # Decisions
    "DecisionEngine",
    "DecisionState",
    "Strategy",
    "RandomStrategy",
    "LLMStrategy",
    "MoveCheck",
    "check_move",
    # LLM
    "LLMClient",
    "LLMError",
    "LLMTransportError",
    "LLMHTTPError",
    "LLMResponseError",
    "LLMDecodeError",
    # Memory
    "MemoryStore",
    "MemoryPersistence",
    "InMemoryPersistence",
    "SqlitePersistence",
    "JsonPersistence",
    "StorageError",
    # Schemas
    "Action",
    "ActionAck",
    "ActionType",
    "AgentSummary",
    "Coordinate",
    "Location",
    "Memory",
    "MemoryType",
    "MoveProposal",
    "Observation",
    "Surroundings",
    "Tile",
    "TileType",
    # Helpers
    "load_traits",
]
