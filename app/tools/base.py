"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from langchain_core.tools import BaseTool
from pydantic import BaseModel

from app.models.messages import Message
from app.services.scheduler import AgentContext


@dataclass
class ExecutionContext:
    """Everything a confirmed execution may use besides its arguments.

    The agent handle is passed here explicitly rather than looked up ambiently.
    """

    tool_call_id: str
    messages: Sequence[Message] = field(default_factory=list)
    agent: AgentContext | None = None


Executor = Callable[[dict[str, Any], ExecutionContext], Awaitable[Any]]


@dataclass
class ToolDefinition:
    """Catalog entry for a tool available to the model.

    Tools carrying a langchain ``tool`` run automatically. Tools without one
    need a human decision and an entry in the execution registry.
    """

    name: str
    description: str
    input_schema_class: type[BaseModel]
    tool: BaseTool | None = None

    @classmethod
    def from_tool(cls, tool: BaseTool) -> "ToolDefinition":
        """Catalog entry for a tool that runs without confirmation."""
        if not isinstance(tool.args_schema, type) or not issubclass(tool.args_schema, BaseModel):
            raise ValueError(f"Tool {tool.name} needs a pydantic args_schema")
        return cls(name=tool.name, description=tool.description, input_schema_class=tool.args_schema, tool=tool)

    @property
    def requires_confirmation(self) -> bool:
        return self.tool is None

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)

    def as_model_tool(self) -> BaseTool | dict[str, Any]:
        """What gets bound to the chat model for this tool.

        Confirmation-gated tools have nothing to run, so the model only sees
        their schema.
        """
        if self.tool is not None:
            return self.tool
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.get_json_schema(),
        }
