"""Data stream parts written to the output channel.

Each part is framed as one line, ``<code>:<json>``, which is the data stream
format the chat UI consumes.
"""

import json
from typing import Any, ClassVar

from pydantic import Field

from app.models.messages import WireModel


class StreamPart(WireModel):
    """A single frame of the data stream."""

    code: ClassVar[str]

    def payload(self) -> Any:
        """JSON-serializable payload of the frame."""
        return self.model_dump(by_alias=True, mode="json")

    def frame(self) -> str:
        """Render the part as a data stream line."""
        return f"{self.code}:{json.dumps(self.payload(), separators=(',', ':'), default=str)}\n"


class TextStreamPart(StreamPart):
    """Assistant text."""

    code: ClassVar[str] = "0"
    text: str

    def payload(self) -> Any:
        return self.text


class ErrorStreamPart(StreamPart):
    """Error surfaced to the UI."""

    code: ClassVar[str] = "3"
    message: str

    def payload(self) -> Any:
        return self.message


class ToolCallStreamPart(StreamPart):
    """A tool call requested by the model."""

    code: ClassVar[str] = "9"
    tool_call_id: str
    tool_name: str
    args: dict[str, Any]


class ToolResultEvent(StreamPart):
    """Update event emitted when a tool invocation reaches its terminal result."""

    code: ClassVar[str] = "a"
    tool_call_id: str
    tool_name: str
    result: Any = None


class StartStepStreamPart(StreamPart):
    """Marks the start of a new assistant message."""

    code: ClassVar[str] = "f"
    message_id: str


class UsageStats(WireModel):
    """Token usage reported with the finish frame."""

    prompt_tokens: int = 0
    completion_tokens: int = 0


class FinishMessageStreamPart(StreamPart):
    """Final frame of a response."""

    code: ClassVar[str] = "d"
    finish_reason: str
    usage: UsageStats = Field(default_factory=UsageStats)
