"""Decision engine: strategy selection, random policy and move legality.

Each call to ``DecisionEngine.decide`` walks IDLE -> DECIDING -> VALIDATING
-> DONE and returns to IDLE. Nothing raised on the LLM path escapes: any
failure there, and any illegal proposal, is replaced by a random move so the
agent always answers an observation.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Protocol

from agentworld.llm_client import LLMClient
from agentworld.logging_utils import ConsoleLogger
from agentworld.memory import MemoryStore
from agentworld.schemas import BLOCKED_TERRAIN, Action, Coordinate, Observation, TileType


class DecisionState(str, Enum):
    IDLE = "idle"
    DECIDING = "deciding"
    VALIDATING = "validating"
    DONE = "done"


@dataclass(frozen=True)
class MoveCheck:
    """Outcome of a legality check; ``reason`` is set when ``legal`` is False."""

    legal: bool
    reason: Optional[str] = None


def check_move(action: Action, observation: Observation) -> MoveCheck:
    """Check a proposed action against the movement rules.

    Legal iff the target is within one step on both axes (diagonals and
    staying put allowed), visible in ``surroundings.tiles``, and not water or
    mountain. The current tile counts as visible even when the server leaves
    it out of ``surroundings.tiles``. An action without a target tile is
    accepted.
    """
    target = action.target_tile
    if target is None:
        return MoveCheck(True)

    current = observation.current_location
    dx = abs(target.x - current.x)
    dy = abs(target.y - current.y)
    if dx > 1 or dy > 1:
        return MoveCheck(False, f"({target.x}, {target.y}) is not adjacent to ({current.x}, {current.y})")

    tile = observation.surroundings.tile_at(target.x, target.y)
    if tile is not None:
        terrain = tile.type
    elif dx == 0 and dy == 0:
        terrain = current.type
    else:
        return MoveCheck(False, f"({target.x}, {target.y}) is not a visible tile")
    if terrain in BLOCKED_TERRAIN:
        return MoveCheck(False, f"cannot move to {terrain.value} terrain at ({target.x}, {target.y})")
    return MoveCheck(True)


class Strategy(Protocol):
    """Protocol for move selection policies."""

    async def propose(self, observation: Observation) -> Action:
        """Return a candidate action for this observation (validated by the engine)."""
        ...

    def uses_llm(self) -> bool:
        """Return True if this strategy performs an LLM call."""
        ...


class RandomStrategy:
    """Uniform choice among orthogonal neighbours that are visible and not water.

    With no such neighbour the agent stays put (target = current tile).
    Pass a seeded ``random.Random`` for reproducible runs.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        *,
        excluded_terrain: FrozenSet[TileType] = frozenset({TileType.WATER}),
    ) -> None:
        self.rng = rng or random.Random()
        self.excluded_terrain = excluded_terrain

    def uses_llm(self) -> bool:
        return False

    def candidates(self, observation: Observation) -> List[Coordinate]:
        current = observation.current_location
        neighbours = [
            (current.x, current.y - 1),
            (current.x + 1, current.y),
            (current.x, current.y + 1),
            (current.x - 1, current.y),
        ]
        result = []
        for x, y in neighbours:
            tile = observation.surroundings.tile_at(x, y)
            if tile is not None and tile.type not in self.excluded_terrain:
                result.append(Coordinate(x=x, y=y))
        return result

    def choose(self, observation: Observation) -> Action:
        options = self.candidates(observation)
        if not options:
            current = observation.current_location
            return Action.move(current.x, current.y)
        return Action(target_tile=self.rng.choice(options))

    async def propose(self, observation: Observation) -> Action:
        return self.choose(observation)


class LLMStrategy:
    """Move selection delegated to the LLM client.

    Relevant memories (if a store is attached) are folded into the prompt, and
    the model's stated reason is condensed into a new memory when
    ``record_memories`` is set. The reason itself is never sent to the server.
    """

    def __init__(
        self,
        client: LLMClient,
        memory_store: Optional[MemoryStore] = None,
        *,
        record_memories: bool = True,
        memory_limit: int = 5,
        logger: Optional[ConsoleLogger] = None,
    ) -> None:
        self.client = client
        self.memory_store = memory_store
        self.record_memories = record_memories
        self.memory_limit = memory_limit
        self.logger = logger or ConsoleLogger("Decision")

    def uses_llm(self) -> bool:
        return True

    async def propose(self, observation: Observation) -> Action:
        memories = []
        if self.memory_store is not None:
            location = observation.current_location
            context = f"At ({location.x}, {location.y}) on {location.type.value}"
            memories = await self.memory_store.retrieve_relevant(context, self.memory_limit)

        proposal = await self.client.decide_next_action(observation, memories)
        target = proposal.target_tile
        self.logger.llm(f"Proposed move to ({target.x}, {target.y})")
        if proposal.reason:
            self.logger.llm(f"AI's reasoning: {proposal.reason}")
            if self.record_memories and self.memory_store is not None:
                await self.memory_store.generate_memory_from_reasoning(proposal.reason)
        return proposal.to_action()


class DecisionEngine:
    """Turns observations into legal actions.

    ``trace`` holds the states visited during the most recent ``decide`` call.
    A proposal that fails ``check_move`` is replaced by a random move over
    tiles that are neither water nor mountain, and by staying put when no such
    neighbour exists.
    """

    def __init__(
        self,
        llm_strategy: Optional[Strategy] = None,
        *,
        random_strategy: Optional[RandomStrategy] = None,
        random_only: bool = False,
        logger: Optional[ConsoleLogger] = None,
    ) -> None:
        self.llm_strategy = llm_strategy
        self.random_strategy = random_strategy or RandomStrategy()
        self.fallback_strategy = RandomStrategy(
            self.random_strategy.rng, excluded_terrain=BLOCKED_TERRAIN
        )
        self.random_only = random_only
        self.logger = logger or ConsoleLogger("Decision")
        self.state = DecisionState.IDLE
        self.trace: List[DecisionState] = []

    @property
    def uses_llm(self) -> bool:
        return not self.random_only and self.llm_strategy is not None

    def _enter(self, state: DecisionState) -> None:
        self.state = state
        self.trace.append(state)

    async def decide(self, observation: Observation) -> Action:
        self.trace = []
        location = observation.current_location
        step = observation.time_step
        try:
            self._enter(DecisionState.DECIDING)
            action = await self._propose(observation)

            self._enter(DecisionState.VALIDATING)
            check = check_move(action, observation)
            if not check.legal:
                message = (
                    f"Invalid move at step {step} from ({location.x}, {location.y}): "
                    f"{check.reason}; using random fallback"
                )
                if self.uses_llm:
                    self.logger.error(message)
                else:
                    self.logger.debug(message)
                action = self._fallback(observation)

            self._enter(DecisionState.DONE)
            return action
        finally:
            self.state = DecisionState.IDLE

    async def _propose(self, observation: Observation) -> Action:
        if not self.uses_llm:
            action = self.random_strategy.choose(observation)
            self.logger.deterministic(f"Random move chosen at step {observation.time_step}")
            return action

        try:
            return await self.llm_strategy.propose(observation)
        except Exception as exc:
            location = observation.current_location
            self.logger.error(
                f"LLM decision failed at step {observation.time_step} "
                f"({location.x}, {location.y}): {type(exc).__name__}: {exc}; using random move"
            )
            return self.random_strategy.choose(observation)

    def _fallback(self, observation: Observation) -> Action:
        action = self.fallback_strategy.choose(observation)
        if check_move(action, observation).legal:
            return action
        current = observation.current_location
        return Action.move(current.x, current.y)


__all__ = [
    "DecisionState",
    "MoveCheck",
    "check_move",
    "Strategy",
    "RandomStrategy",
    "LLMStrategy",
    "DecisionEngine",
]
