"""Logging utilities for the AgentWorld client.

Provides color-coded console output that separates deterministic work
(decoding, validation, random moves) from LLM calls, errors and successes.
Verbosity and color are passed in explicitly; nothing here reads global
process state at call time.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum


class Color(Enum):
    """ANSI color codes for terminal output."""

    BLUE = "\033[94m"      # Deterministic operations (codec, validation)
    YELLOW = "\033[93m"    # LLM calls
    RED = "\033[91m"       # Errors
    GREEN = "\033[92m"     # Success/completion
    CYAN = "\033[96m"      # Info/metadata
    GREY = "\033[90m"      # Verbose/debug

    BOLD = "\033[1m"
    RESET = "\033[0m"


# Markers for operation types (color-blind accessible)
LOG_TAG_DETERMINISTIC = "[•]"
LOG_TAG_LLM = "[AI]"
LOG_TAG_ERROR = "[!]"
LOG_TAG_SUCCESS = "[✓]"
LOG_TAG_INFO = "[i]"
LOG_TAG_DEBUG = "[.]"


def colored(text: str, color: Color, bold: bool = False, *, enabled: bool = True) -> str:
    """Wrap text in ANSI color codes.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold
        enabled: When False the text is returned unchanged

    Returns:
        Colorized text, or plain text when colors are disabled
    """
    if not enabled:
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


class ConsoleLogger:
    """Category-scoped console logger.

    Each line reads ``[HH:MM:SS.mmm] [Category] <tag> message``. ``debug``
    lines are only printed when the logger was built with ``verbose=True``.
    """

    def __init__(self, category: str, *, verbose: bool = False, color: bool = True) -> None:
        self.category = category
        self.verbose = verbose
        self.color = color

    def child(self, category: str) -> "ConsoleLogger":
        """Return a logger for another category sharing this one's settings."""
        return ConsoleLogger(category, verbose=self.verbose, color=self.color)

    def _emit(self, tag: str, message: str, color: Color) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        line = f"[{timestamp}] [{self.category}] {tag} {message}"
        print(colored(line, color, enabled=self.color))

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit(LOG_TAG_DEBUG, message, Color.GREY)

    def info(self, message: str) -> None:
        self._emit(LOG_TAG_INFO, message, Color.CYAN)

    def deterministic(self, message: str) -> None:
        self._emit(LOG_TAG_DETERMINISTIC, message, Color.BLUE)

    def llm(self, message: str) -> None:
        self._emit(LOG_TAG_LLM, message, Color.YELLOW)

    def error(self, message: str) -> None:
        self._emit(LOG_TAG_ERROR, message, Color.RED)

    def success(self, message: str) -> None:
        self._emit(LOG_TAG_SUCCESS, message, Color.GREEN)


__all__ = [
    "Color",
    "ConsoleLogger",
    "colored",
    "LOG_TAG_DETERMINISTIC",
    "LOG_TAG_LLM",
    "LOG_TAG_ERROR",
    "LOG_TAG_SUCCESS",
    "LOG_TAG_INFO",
    "LOG_TAG_DEBUG",
]
