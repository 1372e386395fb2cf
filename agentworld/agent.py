"""
Agent loop.

Coordinates one receive/decide/send cycle at a time:
1. Receive the next chunk from the server
2. Decode it (ActionAck, Observation or Unparsed)
3. For observations of type "observation", decide on a legal action
4. Encode and send the action

Only connection failures end the loop; everything on the decision path
degrades to a safe action or a logged skip.
"""

from __future__ import annotations

from typing import Optional

from agentworld.codec import Unparsed, decode, encode
from agentworld.connection import ConnectionManager, StreamClosed
from agentworld.decision import DecisionEngine
from agentworld.logging_utils import ConsoleLogger
from agentworld.schemas import Action, ActionAck, Observation


class Agent:
    """Drives the connection and the decision engine.

    All collaborators are injected; the agent owns neither configuration
    nor storage.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        decision_engine: DecisionEngine,
        *,
        logger: Optional[ConsoleLogger] = None,
    ) -> None:
        self.connection = connection
        self.decision_engine = decision_engine
        self.logger = logger or ConsoleLogger("Agent")
        self.last_time_step: Optional[int] = None
        self.actions_sent = 0

    async def run(self, max_messages: Optional[int] = None) -> None:
        """Connect and process messages until the stream closes.

        Args:
            max_messages: Stop after this many inbound chunks (None = no limit)

        Raises:
            ConnectError: The connection could not be established
            TransportError: A read or write failed
        """
        self.logger.info(f"Connecting to {self.connection.host}:{self.connection.port}...")
        await self.connection.connect()
        self.logger.info("Listening for server messages...")
        handled = 0
        try:
            while max_messages is None or handled < max_messages:
                try:
                    raw = await self.connection.receive()
                except StreamClosed as exc:
                    self.logger.info(f"Stream closed: {exc}")
                    break
                await self.handle(raw)
                handled += 1
        finally:
            await self.connection.disconnect()

    async def handle(self, raw: bytes) -> Optional[Action]:
        """Process one inbound chunk; returns the action sent, if any."""
        message = decode(raw)
        if isinstance(message, ActionAck):
            self._on_action_ack(message)
            return None
        if isinstance(message, Observation):
            return await self._on_observation(message)
        self._on_unparsed(message)
        return None

    def _on_action_ack(self, ack: ActionAck) -> None:
        self.logger.info(f"Received action response: {ack.message}")
        self.logger.info(
            f"Current position: ({ack.data.x}, {ack.data.y}) - {ack.data.current_tile_type}"
        )
        self.logger.debug(f"Action response type: {ack.response_type}")

    def _on_unparsed(self, message: Unparsed) -> None:
        self.logger.info(f"Received (unparsed): {message.preview()}")

    async def _on_observation(self, observation: Observation) -> Optional[Action]:
        location = observation.current_location
        surroundings = observation.surroundings
        self.logger.info(f"Received observation at time step {observation.time_step}")
        self.logger.info(
            f"Current location: ({location.x}, {location.y}) - {location.type.value}"
        )
        self.logger.info(
            f"Surroundings: {len(surroundings.tiles)} tiles and "
            f"{len(surroundings.agents)} agents visible"
        )

        if not observation.is_observation:
            self.logger.info(
                f"Received {observation.response_type} message, not sending an action"
            )
            return None

        if self.last_time_step is not None and observation.time_step < self.last_time_step:
            self.logger.error(
                f"Time step went backwards ({self.last_time_step} -> {observation.time_step}) "
                f"at ({location.x}, {location.y}); ignoring observation"
            )
            return None
        self.last_time_step = observation.time_step

        action = await self.decision_engine.decide(observation)
        await self.connection.send(encode(action))
        self.actions_sent += 1

        target = action.target_tile
        if target is not None:
            self.logger.success(f"Sent action: {action.action.value} to ({target.x}, {target.y})")
        else:
            self.logger.success(f"Sent action: {action.action.value}")
        return action


__all__ = ["Agent"]
