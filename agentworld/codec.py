"""Wire codec for the AgentWorld protocol.

The server does not tag messages before structural decoding, so inbound
bytes are matched against an ordered list of schemas and the first match
wins. Acknowledgements are tried before observations: a payload satisfying
both is an acknowledgement.

There is no framing on the wire. One JSON document is expected per
transport read; coalesced or split reads will show up here as ``Unparsed``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from agentworld.schemas import Action, ActionAck, Observation


@dataclass(frozen=True)
class Unparsed:
    """Inbound bytes that matched none of the known schemas."""

    raw: bytes

    def preview(self, limit: int = 10) -> str:
        """Human-readable summary: the text itself, or a hex prefix for binary data."""
        try:
            return self.raw.decode("utf-8")
        except UnicodeDecodeError:
            head = " ".join(f"{byte:02x}" for byte in self.raw[:limit])
            return f"{len(self.raw)} bytes: {head}..."


InboundMessage = Union[ActionAck, Observation, Unparsed]

# Order matters: see module docstring.
SCHEMA_MATCHERS: Tuple[Type[BaseModel], ...] = (ActionAck, Observation)


def decode(raw: bytes) -> InboundMessage:
    """Decode one inbound chunk into ActionAck, Observation or Unparsed.

    Never raises for bad input; anything that fails every matcher comes back
    as ``Unparsed(raw)``.
    """
    for schema in SCHEMA_MATCHERS:
        try:
            return schema.model_validate_json(raw)
        except ValidationError:
            continue
        except UnicodeDecodeError:
            break
    return Unparsed(raw)


def encode(action: Action) -> bytes:
    """Serialize an action, omitting absent optional fields."""
    return json.dumps(action.to_wire(), separators=(",", ":")).encode("utf-8")


def decode_action(raw: bytes) -> Action:
    """Parse an outbound action payload (used for replay and diagnostics).

    Raises:
        pydantic.ValidationError: If the bytes are not a valid action
    """
    return Action.model_validate_json(raw)


__all__ = ["Unparsed", "InboundMessage", "SCHEMA_MATCHERS", "decode", "encode", "decode_action"]
