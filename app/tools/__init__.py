"""Tools for the chat agent."""

from app.tools.base import ExecutionContext, Executor, ToolDefinition
from app.tools.registry import ToolsRegistry

__all__ = ["ExecutionContext", "Executor", "ToolDefinition", "ToolsRegistry"]
