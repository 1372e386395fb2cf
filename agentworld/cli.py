"""Command-line entry point: ``python -m agentworld``."""

from __future__ import annotations

import argparse
import asyncio
import random
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional

from agentworld.agent import Agent
from agentworld.config import AgentConfig
from agentworld.connection import ConnectError, ConnectionManager, TransportError
from agentworld.decision import DecisionEngine, LLMStrategy, RandomStrategy
from agentworld.llm_client import LLMClient
from agentworld.logging_utils import ConsoleLogger
from agentworld.memory import MemoryStore
from agentworld.persistence import SqlitePersistence
from agentworld.traits import load_traits


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="agentworld", description="A client agent for AgentWorld")
    parser.add_argument("--host", default="localhost", help="The host to connect to")
    parser.add_argument("--port", type=int, default=8000, help="The port to connect to")
    parser.add_argument("--env-file", default=".env", help="Path to .env file")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging output")
    parser.add_argument(
        "--random-only",
        action="store_true",
        help="Never call the LLM; pick random legal moves",
    )
    parser.add_argument("--traits-file", type=Path, default=None, help="Newline-delimited persona traits")
    parser.add_argument(
        "--memory-db",
        type=Path,
        default=None,
        help="SQLite file for memories (default: a new AgentMemory_<epoch>.db per run)",
    )
    parser.add_argument(
        "--no-memories",
        action="store_true",
        help="Do not turn decision reasoning into stored memories",
    )
    parser.add_argument(
        "--read-timeout",
        type=float,
        default=None,
        help="Seconds to wait for a server message before failing (default: wait forever)",
    )
    parser.add_argument(
        "--connect-attempts",
        type=int,
        default=None,
        help="Connection attempts before giving up (default: 1)",
    )
    parser.add_argument(
        "--newline-framing",
        action="store_true",
        help="Terminate each outbound JSON document with a newline",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random move policy")
    return parser.parse_args(argv)


@dataclass
class AgentRuntime:
    """Everything built for one run; ``memory_store`` needs closing afterwards."""

    agent: Agent
    memory_store: MemoryStore


def build_runtime(config: AgentConfig, *, seed: Optional[int] = None) -> AgentRuntime:
    """Wire the components described by ``config``."""
    root = ConsoleLogger("Agent", verbose=config.verbose, color=config.color)
    traits = load_traits(config.traits_file, logger=root.child("Traits"))

    llm_client: Optional[LLMClient] = None
    if not config.random_only and config.api_key:
        llm_client = LLMClient(
            config.api_key,
            model=config.model,
            endpoint=config.endpoint,
            window_size=config.window_size,
            timeout=config.llm_timeout,
            traits=traits,
            logger=root.child("LLM"),
        )

    memory_store = MemoryStore(
        SqlitePersistence(config.memory_db),
        llm_client,
        logger=root.child("Memory"),
    )

    llm_strategy = None
    if llm_client is not None:
        llm_strategy = LLMStrategy(
            llm_client,
            memory_store,
            record_memories=config.record_memories,
            logger=root.child("Decision"),
        )
    engine = DecisionEngine(
        llm_strategy,
        random_strategy=RandomStrategy(random.Random(seed)),
        random_only=config.random_only,
        logger=root.child("Decision"),
    )
    connection = ConnectionManager(
        config.host,
        config.port,
        read_timeout=config.read_timeout,
        connect_attempts=config.connect_attempts,
        newline_framing=config.newline_framing,
        logger=root.child("Network"),
    )
    return AgentRuntime(agent=Agent(connection, engine, logger=root), memory_store=memory_store)


async def run(config: AgentConfig, *, seed: Optional[int] = None) -> int:
    runtime = build_runtime(config, seed=seed)
    logger = runtime.agent.logger
    await runtime.memory_store.initialize()
    try:
        await runtime.agent.run()
    except ConnectError as exc:
        logger.error(f"Failed to connect: {exc}")
        return 1
    except TransportError as exc:
        logger.error(f"Connection error: {exc}")
        return 1
    finally:
        await runtime.memory_store.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = AgentConfig.from_env(
        args.env_file,
        host=args.host,
        port=args.port,
        verbose=args.verbose or None,
        random_only=args.random_only or None,
        record_memories=False if args.no_memories else None,
        traits_file=args.traits_file,
        memory_db=args.memory_db,
        read_timeout=args.read_timeout,
        connect_attempts=args.connect_attempts,
        newline_framing=args.newline_framing or None,
    )
    logger = ConsoleLogger("Agent", verbose=config.verbose, color=config.color)

    if not config.random_only and not config.api_key:
        logger.error("OPENAI_API_KEY not found in environment or .env file")
        logger.info("Falling back to random moves; add the key to your .env file to enable LLM decisions")
        config = replace(config, random_only=True)

    try:
        config.validate()
    except ValueError as exc:
        logger.error(str(exc))
        return 2

    if config.verbose:
        logger.info("Verbose logging enabled")
    logger.debug(config.display())
    if not config.random_only:
        logger.info("LLM-based decision making enabled")

    try:
        return asyncio.run(run(config, seed=args.seed))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
