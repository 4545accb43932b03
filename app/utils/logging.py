"""Logging setup for the chat service."""

import logging
import os
import sys

from pydantic import BaseModel, Field


def _env_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


class LogConfig(BaseModel):
    """How the service logs."""

    level: str = Field(default_factory=_env_level)
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    # Model client and HTTP transport logs are only useful when debugging them directly
    quiet_loggers: tuple[str, ...] = ("anthropic", "httpx", "httpcore", "uvicorn.access", "langchain_anthropic")
    quiet_level: str = "WARNING"


def setup_logging(config: LogConfig | None = None) -> None:
    """Send every service log line to stdout."""
    config = config or LogConfig()

    logging.basicConfig(
        level=config.level.upper(),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(config.quiet_level)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Module logger at ``level``, or at LOG_LEVEL when none is given."""
    logger = logging.getLogger(name)
    logger.setLevel(level.upper() if level else _env_level())
    return logger
