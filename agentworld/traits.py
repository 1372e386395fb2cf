"""Persona trait loading.

A traits file holds one trait per line; blank lines are ignored. A missing
file means "no traits", not an error.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from agentworld.logging_utils import ConsoleLogger


def parse_traits(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def load_traits(path: Path | str, logger: Optional[ConsoleLogger] = None) -> List[str]:
    logger = logger or ConsoleLogger("Traits")
    path = Path(path)
    if not path.exists():
        logger.info(f"No agent traits file found ({path}); using default personality")
        return []
    try:
        traits = parse_traits(path.read_text("utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        logger.error(f"Failed to read agent traits file {path}: {exc}")
        return []
    logger.info(f"Agent traits loaded: {len(traits)} traits found")
    for trait in traits:
        logger.debug(f"Agent trait: {trait}")
    return traits


__all__ = ["parse_traits", "load_traits"]
