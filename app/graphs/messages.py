"""Conversion between wire messages, model messages and stream parts."""

import json
from collections.abc import Sequence
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from app.confirmation.approval import is_terminal
from app.models.messages import Message
from app.models.stream import StreamPart, TextStreamPart, ToolCallStreamPart, ToolResultEvent


def result_to_text(result: Any) -> str:
    """Render a tool result as model-facing text."""
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


def content_to_text(content: str | list[Any]) -> str:
    """Extract plain text from message content (string or content blocks)."""
    if isinstance(content, str):
        return content

    chunks = []
    for block in content:
        if isinstance(block, str):
            chunks.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            chunks.append(block.get("text", ""))
    return "".join(chunks)


def _assistant_messages(message: Message) -> list[BaseMessage]:
    # Calls still waiting on the user have no result the model could pair with them
    completed = [invocation for invocation in message.tool_invocations() if is_terminal(invocation)]

    if not completed:
        return [AIMessage(content=message.content, id=message.id)] if message.content else []

    ai_message = AIMessage(
        content=message.content,
        id=message.id,
        tool_calls=[
            {"id": invocation.tool_call_id, "name": invocation.tool_name, "args": invocation.args}
            for invocation in completed
        ],
    )
    tool_messages: list[BaseMessage] = [
        ToolMessage(
            content=result_to_text(invocation.result),
            tool_call_id=invocation.tool_call_id,
            name=invocation.tool_name,
        )
        for invocation in completed
    ]
    return [ai_message, *tool_messages]


def to_langchain_messages(conversation: Sequence[Message]) -> list[BaseMessage]:
    """Convert a wire conversation to the messages sent to the model."""
    converted: list[BaseMessage] = []
    for message in conversation:
        if message.role == "assistant":
            converted.extend(_assistant_messages(message))
        elif not message.content:
            continue
        elif message.role == "system":
            converted.append(SystemMessage(content=message.content, id=message.id))
        else:
            converted.append(HumanMessage(content=message.content, id=message.id))
    return converted


def to_stream_parts(message: BaseMessage) -> list[StreamPart]:
    """Stream parts announcing a message produced by the graph."""
    if isinstance(message, ToolMessage):
        result = message.artifact if message.artifact is not None else message.content
        return [ToolResultEvent(tool_call_id=message.tool_call_id, tool_name=message.name or "", result=result)]

    if not isinstance(message, AIMessage):
        return []

    parts: list[StreamPart] = []
    text = content_to_text(message.content)
    if text:
        parts.append(TextStreamPart(text=text))
    for tool_call in message.tool_calls:
        parts.append(
            ToolCallStreamPart(
                tool_call_id=tool_call["id"] or "",
                tool_name=tool_call["name"],
                args=tool_call["args"],
            )
        )
    return parts
