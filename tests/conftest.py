"""Shared fixtures."""

from unittest.mock import MagicMock

import pytest

from app.services.scheduler import InMemoryScheduler
from app.tools.registry import ToolsRegistry


@pytest.fixture
def channel():
    """Output channel double recording writes."""
    return MagicMock(spec=["write", "close"])


@pytest.fixture
def scheduler():
    return InMemoryScheduler()


@pytest.fixture
def registry(scheduler):
    """Fresh registry with the default tools over an in-memory scheduler."""
    return ToolsRegistry(agent=scheduler)
