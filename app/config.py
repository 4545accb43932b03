"""Application settings loaded from the environment."""

import os

from pydantic import BaseModel


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Runtime configuration for the chat agent."""

    anthropic_api_key: str | None = None
    model: str = "claude-3-5-sonnet-20241022"
    temperature: float = 0.0
    max_tokens: int = 4096

    # Upper bound on agent/tool steps per request
    recursion_limit: int = 10

    # Run approved tool executions as concurrent tasks
    concurrent_tool_execution: bool = True

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            model=os.getenv("ANTHROPIC_MODEL", cls.model_fields["model"].default),
            temperature=float(os.getenv("MODEL_TEMPERATURE", "0")),
            max_tokens=int(os.getenv("MODEL_MAX_TOKENS", "4096")),
            recursion_limit=int(os.getenv("AGENT_RECURSION_LIMIT", "10")),
            concurrent_tool_execution=_env_bool("TOOL_EXECUTION_CONCURRENT", True),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
