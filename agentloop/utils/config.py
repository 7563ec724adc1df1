"""
Configuration Management
========================

Centralized configuration for the agent loop. All environment variables
are read, typed and defaulted here so the rest of the code receives plain
frozen dataclasses.

Components never call ``get_config()`` themselves; the entry point loads
the configuration once and hands each section to the component that needs
it (the model section to the agents, the memory section to the store, and
so on). That keeps every component constructible in tests without an
environment.

Usage:
    from agentloop.utils.config import get_config

    config = get_config()
    print(config.model.model)
    print(config.memory.max_capacity)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from agentloop.utils.logger import Logger

logger = Logger("Config")


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ValueError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ValueError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your .env file."
        )
    return value


def _optional(name: str, default: str) -> str:
    """Get an optional environment variable with a default."""
    return os.getenv(name, default)


def _optional_int(name: str, default: int) -> int:
    """Get an optional integer environment variable."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float) -> float:
    """Get an optional float environment variable."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"{name} is not a valid number, using default: {default}")
        return default


def _optional_bool(name: str, default: bool) -> bool:
    """True if the value is 'true' (case-insensitive)."""
    value = os.getenv(name)
    if not value:
        return default
    return value.lower() == "true"


def _optional_paths(name: str, default: str) -> tuple[Path, ...]:
    """Comma-separated list of directories."""
    raw = os.getenv(name) or default
    return tuple(Path(part.strip()) for part in raw.split(",") if part.strip())


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class ModelConfig:
    """Chat-completion provider configuration."""
    api_key: str
    base_url: str | None       # OpenAI-compatible endpoint; None = api.openai.com
    model: str
    context_window: int = 4096  # Total tokens the model accepts
    max_tokens: int = 2000      # Ceiling for any single completion
    temperature: float = 0.7


@dataclass(frozen=True)
class AgentConfig:
    """Agent and orchestration behaviour."""
    language: str = "zh"              # "zh" or "en"
    streaming: bool = True            # Stream provider tokens into Thoughts
    multi_agent_min_length: int = 100 # Messages longer than this go multi-agent
    run_timeout_seconds: int = 0      # 0 disables the run deadline


@dataclass(frozen=True)
class MemoryConfig:
    """Agent memory store configuration."""
    max_capacity: int = 1000
    decay_factor: float = 0.01


@dataclass(frozen=True)
class SearchConfig:
    """Web search tool configuration (Serper-compatible API)."""
    api_key: str | None = None
    api_base: str = "https://google.serper.dev/search"
    max_results: int = 5


@dataclass(frozen=True)
class FileConfig:
    """File operation tool configuration."""
    allowed_roots: tuple[Path, ...] = field(
        default_factory=lambda: (Path("/tmp"), Path("/workspace"))
    )


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.model.model
        config.agent.language
        config.search.api_key
    """
    model: ModelConfig
    agent: AgentConfig
    memory: MemoryConfig
    search: SearchConfig
    files: FileConfig
    log_level: str


def load_config() -> Config:
    """
    Load and validate all configuration from the environment.

    Raises:
        ValueError: If required configuration is missing
    """
    load_dotenv()

    return Config(
        model=ModelConfig(
            api_key=_required("OPENAI_API_KEY"),
            base_url=os.getenv("OPENAI_BASE_URL") or None,
            model=_optional("OPENAI_MODEL", "gpt-4o-mini"),
            context_window=_optional_int("MODEL_CONTEXT_WINDOW", 4096),
            max_tokens=_optional_int("MODEL_MAX_TOKENS", 2000),
            temperature=_optional_float("MODEL_TEMPERATURE", 0.7),
        ),
        agent=AgentConfig(
            language=_optional("AGENT_LANGUAGE", "zh"),
            streaming=_optional_bool("AGENT_STREAMING", True),
            multi_agent_min_length=_optional_int("MULTI_AGENT_MIN_LENGTH", 100),
            run_timeout_seconds=_optional_int("RUN_TIMEOUT_SECONDS", 0),
        ),
        memory=MemoryConfig(
            max_capacity=_optional_int("MEMORY_MAX_CAPACITY", 1000),
            decay_factor=_optional_float("MEMORY_DECAY_FACTOR", 0.01),
        ),
        search=SearchConfig(
            api_key=os.getenv("SEARCH_API_KEY") or None,
            api_base=_optional("SEARCH_API_BASE", "https://google.serper.dev/search"),
            max_results=_optional_int("SEARCH_MAX_RESULTS", 5),
        ),
        files=FileConfig(
            allowed_roots=_optional_paths("FILE_ALLOWED_ROOTS", "/tmp,/workspace"),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """Load the configuration on first access and cache it."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def is_search_configured(config: SearchConfig) -> bool:
    """Check if the web search tool has credentials."""
    return config.api_key is not None
