"""Chat-completion client with a rolling conversation window.

Talks to an OpenAI-compatible ``/chat/completions`` endpoint with a bearer
token and always requests a JSON object response. Each call sends a fresh
system prompt, the last N user/assistant pairs and the new user turn.

Failures are split into distinct exception types so callers can tell a
network problem from an HTTP status, a missing ``choices`` field, or a
malformed JSON body. The decision engine treats all of them as "fall back
to a random move".
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence
from urllib import error, request

from pydantic import ValidationError

from agentworld.logging_utils import ConsoleLogger
from agentworld.prompts import WORLD_RULES, build_decision_prompt, build_system_prompt
from agentworld.schemas import Memory, MoveProposal, Observation

DEFAULT_MODEL = "gpt-4o"
DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_WINDOW_SIZE = 5
LLM_TIMEOUT_SECONDS = 120.0

# Raw bodies are cut to this many characters in debug output.
_LOG_PREVIEW_CHARS = 1000


class LLMError(RuntimeError):
    """Base class for every failure on the LLM path."""


class LLMTransportError(LLMError):
    """The request never produced an HTTP response (DNS, refused, timeout)."""


class LLMHTTPError(LLMError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"HTTP error {status}: {body}")


class LLMResponseError(LLMError):
    """The response was JSON but lacked a usable ``choices[0].message.content``."""


class LLMDecodeError(LLMError):
    """A body that should have been JSON (envelope or content) could not be parsed."""


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def _perform_chat_request(
    payload: dict[str, Any],
    endpoint: str,
    api_key: str,
    timeout: float,
) -> str:
    """Execute the blocking HTTPS POST and return the raw response body."""

    data = json.dumps(payload).encode("utf-8")
    req = request.Request(
        endpoint,
        data=data,
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        },
        method="POST",
    )

    try:
        with request.urlopen(req, timeout=timeout) as resp:
            return resp.read().decode("utf-8")
    except error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
        raise LLMHTTPError(exc.code, body or str(exc.reason)) from exc
    except error.URLError as exc:
        raise LLMTransportError(f"Could not reach {endpoint}: {exc.reason}") from exc
    except OSError as exc:
        raise LLMTransportError(f"Transport failure talking to {endpoint}: {exc}") from exc


def _extract_content(raw: str) -> str:
    """Pull ``choices[0].message.content`` out of a chat-completion body."""
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LLMDecodeError("LLM endpoint returned a non-JSON response.") from exc

    if not isinstance(parsed, dict):
        raise LLMDecodeError("LLM response envelope is not a JSON object.")

    choices = parsed.get("choices")
    if not isinstance(choices, list) or not choices:
        raise LLMResponseError("No choices in LLM API response.")

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise LLMResponseError("LLM response did not include assistant content.")
    return content


class LLMClient:
    """Stateful chat-completion wrapper.

    Only the conversation history is mutable. Calls are serialized with an
    ``asyncio.Lock`` so a turn pair is always recorded together.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        endpoint: str = DEFAULT_ENDPOINT,
        window_size: int = DEFAULT_WINDOW_SIZE,
        timeout: float = LLM_TIMEOUT_SECONDS,
        traits: Sequence[str] = (),
        rules: Sequence[str] = WORLD_RULES,
        logger: Optional[ConsoleLogger] = None,
    ) -> None:
        if window_size < 0:
            raise ValueError("window_size must be >= 0")
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint
        self.window_size = window_size
        self.timeout = timeout
        self.traits = list(traits)
        self.rules = list(rules)
        self.logger = logger or ConsoleLogger("LLM")
        self._history: List[ChatMessage] = []
        self._lock = asyncio.Lock()

    @property
    def history(self) -> List[ChatMessage]:
        """Retained turns, oldest first (at most ``window_size`` pairs)."""
        return list(self._history)

    def reset(self) -> None:
        self._history.clear()

    def build_messages(self, system_prompt: str, user_prompt: str) -> List[ChatMessage]:
        """System prompt + last N pairs + the new user turn."""
        window = self._history[-2 * self.window_size:] if self.window_size else []
        return [
            ChatMessage("system", system_prompt),
            *window,
            ChatMessage("user", user_prompt),
        ]

    def _record_turn(self, user_prompt: str, reply: str) -> None:
        self._history.append(ChatMessage("user", user_prompt))
        self._history.append(ChatMessage("assistant", reply))
        # Older pairs are never replayed, so they are not kept either.
        excess = len(self._history) - 2 * self.window_size
        if excess > 0:
            del self._history[:excess]

    async def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        """Send one request and return the assistant content string.

        Raises:
            LLMTransportError: Network failure or timeout
            LLMHTTPError: Non-2xx status (``status`` and ``body`` attached)
            LLMResponseError: No usable ``choices`` in the response
            LLMDecodeError: Response body is not valid JSON
        """
        async with self._lock:
            messages = self.build_messages(system_prompt, user_prompt)
            payload = {
                "model": self.model,
                "messages": [message.to_dict() for message in messages],
                "response_format": {"type": "json_object"},
            }
            self.logger.debug(f"SYSTEM_PROMPT: {system_prompt}")
            self.logger.debug(f"USER_PROMPT: {user_prompt}")
            self.logger.debug(f"Including {len(messages) - 1} conversation messages in context")

            started = time.monotonic()
            try:
                raw = await asyncio.wait_for(
                    asyncio.to_thread(
                        _perform_chat_request,
                        payload,
                        self.endpoint,
                        self.api_key,
                        self.timeout,
                    ),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError as exc:
                self.logger.error(f"LLM call timed out after {int(self.timeout)}s")
                raise LLMTransportError(f"LLM call timed out after {self.timeout}s") from exc
            except LLMHTTPError as exc:
                self.logger.error(f"LLM API error: {exc.status}")
                raise
            self.logger.debug(f"Request took {time.monotonic() - started:.2f} seconds")

            preview = raw if len(raw) <= _LOG_PREVIEW_CHARS else raw[:_LOG_PREVIEW_CHARS] + "... [truncated]"
            self.logger.debug(f"RAW_RESPONSE: {preview}")

            content = _extract_content(raw)
            self._record_turn(user_prompt, content)
            self.logger.debug(f"RESPONSE_CONTENT: {content}")
            return content

    async def decide_next_action(
        self,
        observation: Observation,
        memories: Sequence[Memory] = (),
    ) -> MoveProposal:
        """Ask the model for the next move and parse its JSON reply.

        Raises:
            LLMError: Any failure from ``chat_completion`` or an unparseable reply
        """
        system_prompt = build_system_prompt(self.traits, self.rules)
        user_prompt = build_decision_prompt(observation, memories)

        self.logger.llm(f"Requesting move decision for time step {observation.time_step}")
        content = await self.chat_completion(system_prompt, user_prompt)
        try:
            return MoveProposal.model_validate_json(content)
        except ValidationError as exc:
            self.logger.debug(f"Unparseable move proposal: {content}")
            raise LLMDecodeError(f"Failed to decode move proposal: {exc}") from exc


__all__ = [
    "LLMClient",
    "ChatMessage",
    "LLMError",
    "LLMTransportError",
    "LLMHTTPError",
    "LLMResponseError",
    "LLMDecodeError",
    "DEFAULT_MODEL",
    "DEFAULT_ENDPOINT",
    "DEFAULT_WINDOW_SIZE",
    "LLM_TIMEOUT_SECONDS",
]
