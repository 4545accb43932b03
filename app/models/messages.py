"""Conversation message and tool invocation wire models."""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel

ToolInvocationStatus = Literal["call", "partial-call", "result"]

TOOL_INVOCATION_STATES: frozenset[str] = frozenset({"call", "partial-call", "result"})


class WireModel(BaseModel):
    """Base for models exchanged with the UI, which uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize using wire (camelCase) keys."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ToolInvocation(WireModel):
    """A model-requested tool call together with its execution state."""

    model_config = ConfigDict(extra="allow")

    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    state: ToolInvocationStatus
    result: Any = None


class ToolInvocationPart(WireModel):
    """Message part carrying a tool invocation."""

    model_config = ConfigDict(extra="allow")

    type: Literal["tool-invocation"] = "tool-invocation"
    tool_invocation: ToolInvocation


class OpaquePart(WireModel):
    """Any other part (text, reasoning, sources...), kept exactly as received."""

    model_config = ConfigDict(extra="allow")

    type: Any = None


def _part_tag(value: Any) -> str:
    """Only well-formed tool invocations are parsed, everything else passes through."""
    if isinstance(value, ToolInvocationPart):
        return "tool-invocation"
    if not isinstance(value, dict) or value.get("type") != "tool-invocation":
        return "other"

    invocation = value.get("toolInvocation", value.get("tool_invocation"))
    if not isinstance(invocation, dict):
        return "other"

    call_id = invocation.get("toolCallId", invocation.get("tool_call_id"))
    name = invocation.get("toolName", invocation.get("tool_name"))
    if not isinstance(call_id, str) or not isinstance(name, str):
        return "other"
    if not isinstance(invocation.get("args", {}), dict):
        return "other"
    if invocation.get("state") not in TOOL_INVOCATION_STATES:
        return "other"
    return "tool-invocation"


Part = Annotated[
    Union[
        Annotated[ToolInvocationPart, Tag("tool-invocation")],
        Annotated[OpaquePart, Tag("other")],
    ],
    Discriminator(_part_tag),
]


class Message(WireModel):
    """A message in a conversation.

    Fields this service does not use (annotations, experimental attachments...)
    are kept so the conversation goes back to the UI unchanged.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    role: Literal["user", "assistant", "system"]
    content: str = ""
    created_at: datetime | None = None
    parts: list[Part] | None = None

    def tool_invocations(self) -> list[ToolInvocation]:
        """Return the tool invocations carried by this message, in part order."""
        if not self.parts:
            return []
        return [part.tool_invocation for part in self.parts if isinstance(part, ToolInvocationPart)]
