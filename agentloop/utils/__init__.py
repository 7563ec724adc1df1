"""
Utilities Module
================

Common utilities shared across the package:
- logger: context-aware logging with levels and timing
- config: environment-driven configuration dataclasses
"""

from agentloop.utils.logger import Logger, logger
from agentloop.utils.config import (
    AgentConfig,
    Config,
    FileConfig,
    MemoryConfig,
    ModelConfig,
    SearchConfig,
    get_config,
)

__all__ = [
    "Logger",
    "logger",
    "get_config",
    "Config",
    "ModelConfig",
    "AgentConfig",
    "MemoryConfig",
    "SearchConfig",
    "FileConfig",
]
