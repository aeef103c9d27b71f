"""Application settings."""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass
class Settings:
    """Application configuration."""

    # OpenRouter
    openrouter_api_key: str = field(
        default_factory=lambda: os.getenv("OPENROUTER_API_KEY", "")
    )
    openrouter_base_url: str = "https://openrouter.ai/api/v1"

    # Models
    default_model: str = field(
        default_factory=lambda: os.getenv("DEFAULT_MODEL", "anthropic/claude-sonnet-4")
    )
    planner_model: str = field(
        default_factory=lambda: os.getenv("PLANNER_MODEL", "anthropic/claude-sonnet-4")
    )
    iterator_model: str = field(
        default_factory=lambda: os.getenv("ITERATOR_MODEL", "anthropic/claude-sonnet-4")
    )

    # Temperature
    default_temperature: float = 0.7
    planner_temperature: float = 0.3  # Low: plans should be reproducible
    iterator_temperature: float = 0.3

    # Token caps
    planner_max_tokens: int = 2000
    iterator_max_tokens: int = 1000

    # Agent loop
    max_iterations: int = field(
        default_factory=lambda: _env_int("CODELOOP_MAX_ITERATIONS", 10)
    )
    max_retries: int = field(
        default_factory=lambda: _env_int("CODELOOP_MAX_RETRIES", 3)
    )

    # Tools
    command_timeout: int = field(
        default_factory=lambda: _env_int("CODELOOP_COMMAND_TIMEOUT", 60)
    )
    allow_shell_commands: bool = field(
        default_factory=lambda: _env_bool("CODELOOP_ALLOW_SHELL_COMMANDS", True)
    )
    allow_git_push: bool = field(
        default_factory=lambda: _env_bool("CODELOOP_ALLOW_GIT_PUSH", False)
    )
    working_directory: str = field(
        default_factory=lambda: os.getenv("CODELOOP_WORKING_DIRECTORY") or os.getcwd()
    )

    # App metadata (for OpenRouter headers)
    app_name: str = "codeloop"
    app_url: str = "https://github.com/codeloop"


settings = Settings()
