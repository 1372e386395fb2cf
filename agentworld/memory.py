"""
MemoryStore: the agent's durable memory of what it perceived and decided.

Key responsibilities:
- Append memory records through a MemoryPersistence backend (duplicate ids
  are rejected, never overwritten)
- Condense LLM decision reasoning into one short factual memory
- Retrieve memories relevant to a context (stubbed; see retrieve_relevant)

Memory generation runs inside the decision cycle and must never abort it,
so every failure on that path is logged and swallowed.
"""

from __future__ import annotations

import json
from typing import Iterable, List, Optional

from pydantic import ValidationError

from agentworld.llm_client import LLMClient, LLMError
from agentworld.logging_utils import ConsoleLogger
from agentworld.persistence import MemoryPersistence, StorageError
from agentworld.prompts import build_memory_prompt
from agentworld.schemas import Memory, MemoryGenerationResponse, MemoryType


class MemoryStore:
    """Append-only memory store with LLM-assisted memory generation."""

    def __init__(
        self,
        persistence: MemoryPersistence,
        llm_client: Optional[LLMClient] = None,
        *,
        logger: Optional[ConsoleLogger] = None,
    ) -> None:
        self.persistence = persistence
        self.llm_client = llm_client
        self.logger = logger or ConsoleLogger("Memory")

    async def initialize(self) -> None:
        await self.persistence.initialize()

    async def close(self) -> None:
        await self.persistence.close()

    async def append(self, memory: Memory) -> None:
        """Persist one memory.

        Raises:
            StorageError: On write failure or if ``memory.unique_id`` is already stored
        """
        await self.persistence.insert_memory(memory)
        self.logger.success(f"Memory saved: {memory.text_content}")

    async def remember(
        self,
        text: str,
        memory_type: MemoryType = MemoryType.REGULAR,
        *,
        links: Iterable[str] = (),
    ) -> Memory:
        """Build a memory with a fresh id and the current time, then append it."""
        link_ids = list(links)
        memory = Memory(
            memory_type=memory_type,
            text_content=text,
            links=json.dumps(link_ids) if link_ids else "",
        )
        await self.append(memory)
        return memory

    async def count(self) -> int:
        return await self.persistence.count()

    async def generate_memory_from_reasoning(self, reasoning: str) -> Optional[Memory]:
        """Summarize reasoning into one factual sentence and store it as an action memory.

        Returns the stored memory, or None when anything went wrong. Never raises.
        """
        if self.llm_client is None:
            self.logger.debug("No LLM client configured; skipping memory generation")
            return None

        self.logger.llm("Generating a memory from decision reasoning")
        prompt = build_memory_prompt(reasoning)
        try:
            content = await self.llm_client.chat_completion(prompt.system, prompt.user)
            response = MemoryGenerationResponse.model_validate_json(content)
        except (LLMError, ValidationError) as exc:
            self.logger.error(f"Failed to generate memories: {exc}")
            return None

        if not response.memories:
            self.logger.debug("No memories were generated from the reasoning")
            return None

        memory = Memory(memory_type=MemoryType.ACTION, text_content=response.memories[0])
        try:
            await self.append(memory)
        except StorageError as exc:
            self.logger.error(f"Failed to save memory: {exc}")
            return None
        return memory

    async def retrieve_relevant(self, context: str, limit: int = 5) -> List[Memory]:
        """Return at most ``limit`` memories most related to ``context``.

        Not implemented yet: always returns an empty list. The eventual
        version ranks stored memories by similarity over external vector
        embeddings keyed by ``unique_id``; the signature stays as is.
        """
        self.logger.debug(
            f"retrieve_relevant called (limit={limit}); similarity search not implemented"
        )
        return []


__all__ = ["MemoryStore"]
