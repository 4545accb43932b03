"""State definitions for the chat graph."""

from collections.abc import Sequence
from typing import Annotated, Any, Literal

from langchain_core.messages import BaseMessage
from langgraph.graph import add_messages
from pydantic import BaseModel, ConfigDict, Field


class ToolCall(BaseModel):
    """Represents a tool call request."""

    id: str
    name: str
    args: dict[str, Any]


class ChatState(BaseModel):
    """State passed through every node of the chat graph."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Model-facing messages
    messages: Annotated[Sequence[BaseMessage], add_messages]

    # Calls from the last model turn that wait for a human decision
    pending_confirmations: list[ToolCall] = Field(default_factory=list)

    # Control flow
    next_step: Literal["agent", "tools", "error", "end"] | None = None
    error: str | None = None
    retry_count: int = 0

    # Token usage tracking
    total_input_tokens: int = 0
    total_output_tokens: int = 0
