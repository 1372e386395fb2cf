"""
AgentWorld configuration.

Loads settings from a ``.env`` file and the process environment into an
explicit ``AgentConfig`` value that is passed to each component's
constructor. Nothing reads the environment after startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from agentworld.llm_client import (
    DEFAULT_ENDPOINT,
    DEFAULT_MODEL,
    DEFAULT_WINDOW_SIZE,
    LLM_TIMEOUT_SECONDS,
)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class AgentConfig:
    """Runtime settings for one agent process."""

    host: str = "localhost"
    port: int = 8000

    # LLM
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT
    llm_timeout: float = LLM_TIMEOUT_SECONDS
    window_size: int = DEFAULT_WINDOW_SIZE

    # Behaviour
    random_only: bool = False
    record_memories: bool = True
    traits_file: Path = Path(".agentTraits")
    memory_db: Optional[Path] = None

    # Transport
    read_timeout: Optional[float] = None
    connect_attempts: int = 1
    newline_framing: bool = False

    # Output
    verbose: bool = False
    color: bool = True

    @classmethod
    def from_env(cls, env_file: Path | str | None = ".env", **overrides: Any) -> "AgentConfig":
        """Build a config from ``env_file`` (if present) and the environment.

        Keyword overrides whose value is not None win over the environment.
        """
        if env_file is not None and Path(env_file).is_file():
            load_dotenv(env_file)

        memory_db = os.getenv("AGENT_MEMORY_DB")
        config = cls(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            model=os.getenv("LLM_MODEL", DEFAULT_MODEL),
            endpoint=os.getenv("LLM_ENDPOINT", DEFAULT_ENDPOINT),
            llm_timeout=_env_float("LLM_TIMEOUT_SECONDS", LLM_TIMEOUT_SECONDS),
            window_size=_env_int("THREAD_MEMORY_SIZE", DEFAULT_WINDOW_SIZE),
            traits_file=Path(os.getenv("AGENT_TRAITS_FILE", ".agentTraits")),
            memory_db=Path(memory_db) if memory_db else None,
            color=not _env_flag("AGENT_NO_COLOR"),
        )
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown config fields: {sorted(unknown)}")
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(config, **changes)

    def validate(self) -> None:
        """Raise ValueError if the configuration cannot be used."""
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        if self.window_size < 0:
            raise ValueError("THREAD_MEMORY_SIZE must be >= 0")
        if self.llm_timeout <= 0:
            raise ValueError("LLM_TIMEOUT_SECONDS must be positive")
        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read timeout must be positive")
        if self.connect_attempts < 1:
            raise ValueError("connect attempts must be >= 1")
        if not self.random_only and not self.api_key:
            raise ValueError(
                "OPENAI_API_KEY is required for LLM-based decisions. "
                "Add it to your .env file or run with --random-only."
            )

    def display(self) -> str:
        """Return a formatted summary. The API key is never shown."""
        lines = [
            "AgentWorld Configuration:",
            f"  Server: {self.host}:{self.port}",
            f"  Strategy: {'random' if self.random_only else 'llm'}",
            f"  LLM Model: {self.model}",
            f"  API key: {'set' if self.api_key else 'missing'}",
            f"  Thread memory size: {self.window_size}",
            f"  Traits file: {self.traits_file}",
            f"  Memory store: {self.memory_db or 'new per run'}",
        ]
        return "\n".join(lines)


__all__ = ["AgentConfig"]
