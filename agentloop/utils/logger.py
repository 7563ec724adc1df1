"""
Logger Utility
==============

Context-aware logging for the agent loop. Every component creates its own
``Logger("Component")`` so a run can be followed stage by stage:

    [2025-01-31T10:30:00] [INFO] [Agent:Analyst] Observe completed
    [2025-01-31T10:30:02] [WARN] [Tools] Tool web_search failed: not configured

Features:
1. Log levels (DEBUG, INFO, WARNING, ERROR) filtered by LOG_LEVEL
2. Timestamps and color-coded terminal output
3. Child loggers for nested contexts (agent -> stage)
4. Optional structured data printed as JSON
5. ``timed()`` blocks that log how long a stage took

Usage:
    from agentloop.utils.logger import Logger

    logger = Logger("Orchestrator")
    logger.info("Run started", {"mode": "multi"})

    with logger.timed("final answer"):
        ...
"""

import json
import os
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from enum import IntEnum
from typing import Any, Iterator


class LogLevel(IntEnum):
    """Log levels; higher values are more severe."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def _get_log_level_from_env() -> LogLevel:
    """Parse LOG_LEVEL, defaulting to INFO for unknown values."""
    level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    return _LEVEL_NAMES.get(level_str, LogLevel.INFO)


# Shared by every Logger; LOG_LEVEL may only be known after .env is loaded
_process_level = _get_log_level_from_env()


def set_log_level(level: str) -> None:
    """Change the level of every logger in the process. Unknown names are ignored."""
    global _process_level
    _process_level = _LEVEL_NAMES.get(level.upper(), _process_level)


class Logger:
    """
    A context-aware logger with colored output.

    Example:
        logger = Logger("Agent")
        stage = logger.child("Think")
        stage.debug("Delta received", {"chars": 42})
    """

    def __init__(self, context: str = ""):
        """
        Initialize a logger.

        Args:
            context: Prefix shown in every line (e.g. "Agent", "Memory")
        """
        self.context = context

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is ``parent:child``."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= _process_level

    def _format_message(self, level: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        formatted = self._format_message(level_name, message, color)

        # Everything goes to stderr so stdout stays free for streamed answers
        stream = sys.stderr
        print(formatted, file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str, ensure_ascii=False)
            print(f"{Colors.DIM}{data_str}{Colors.RESET}", file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log detailed development information (LOG_LEVEL=DEBUG)."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log general operational information."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a degraded but recoverable situation."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(self, message: str, error: BaseException | None = None) -> None:
        """
        Log an error, optionally with the exception that caused it.

        Args:
            message: The error message
            error: Exception whose type and message are included
        """
        data = None
        if error:
            data = {
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, data)

    @contextmanager
    def timed(self, operation: str, data: dict[str, Any] | None = None) -> Iterator[None]:
        """
        Log the wall-clock duration of a block at DEBUG level.

        Example:
            with logger.timed("observe", {"agent": "Analyst"}):
                await agent.observe(message)
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            payload = dict(data or {})
            payload["duration_ms"] = round(elapsed_ms, 1)
            self.debug(f"{operation} finished", payload)


# Default logger for code that doesn't need its own context
logger = Logger("AgentLoop")
