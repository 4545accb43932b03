"""Tool catalog and execution registry."""

from collections.abc import Mapping
from typing import Any

from langchain_core.tools import BaseTool

from app.services.scheduler import AgentContext
from app.tools.base import Executor, ToolDefinition
from app.tools.scheduling import (
    create_cancel_scheduled_task_tool,
    create_get_scheduled_tasks_tool,
    create_schedule_task_tool,
)
from app.tools.weather import create_local_time_tool, create_weather_tool, get_weather_information
from app.utils.logging import get_logger

logger = get_logger(__name__)


class ToolsRegistry:
    """Catalog of tools plus the executors for tools that need confirmation."""

    def __init__(self, agent: AgentContext | None = None, register_defaults: bool = True):
        """Initialize the registry.

        Args:
            agent: Agent context the automatic tools and confirmed executions work with
            register_defaults: Register the default tool set
        """
        self.agent = agent
        self._tools: dict[str, ToolDefinition] = {}
        self._executions: dict[str, Executor] = {}
        if register_defaults:
            self._register_default_tools()

    def _register_default_tools(self) -> None:
        """Register the default tools and confirmed-execution handlers."""
        self.register_tool(create_weather_tool())
        for tool in (
            create_local_time_tool(),
            create_schedule_task_tool(self.agent),
            create_get_scheduled_tasks_tool(self.agent),
            create_cancel_scheduled_task_tool(self.agent),
        ):
            self.register_tool(ToolDefinition.from_tool(tool))

        self.register_execution("getWeatherInformation", get_weather_information)
        logger.info(f"Tools registry created with tools: {', '.join(self.get_tool_names())}")

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the catalog."""
        self._tools[tool.name] = tool

    def register_execution(self, name: str, executor: Executor) -> None:
        """Register the executor run once a human approves a call to ``name``."""
        tool = self._tools.get(name)
        if tool is None:
            raise ValueError(f"Cannot register execution for unknown tool: {name}")
        if not tool.requires_confirmation:
            raise ValueError(f"Tool {name} executes automatically and cannot take a confirmed execution")
        self._executions[name] = executor

    @property
    def tools(self) -> Mapping[str, ToolDefinition]:
        return dict(self._tools)

    @property
    def executions(self) -> Mapping[str, Executor]:
        return dict(self._executions)

    def get_tool(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def requires_confirmation(self, name: str) -> bool:
        """True if calls to ``name`` wait for a human decision."""
        tool = self._tools.get(name)
        return tool is not None and tool.requires_confirmation

    def get_langchain_tools(self) -> list[BaseTool]:
        """Tools the graph runs without asking."""
        return [definition.tool for definition in self._tools.values() if definition.tool is not None]

    def get_model_tools(self) -> list[BaseTool | dict[str, Any]]:
        """Tools to bind to the chat model, automatic and confirmation-gated."""
        return [definition.as_model_tool() for definition in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools
