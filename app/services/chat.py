"""Chat service: resolves confirmed tool calls, then runs the chat graph."""

from collections.abc import Sequence
from typing import Any

from cuid2 import cuid_wrapper
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel

from app.config import Settings, get_settings
from app.confirmation.processor import ToolCallProcessor
from app.graphs.chat import create_chat_graph
from app.graphs.messages import to_langchain_messages, to_stream_parts
from app.models.messages import Message
from app.models.stream import FinishMessageStreamPart, StartStepStreamPart, UsageStats
from app.services.scheduler import InMemoryScheduler
from app.streaming.channel import OutputChannel
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


def create_chat_model(settings: Settings) -> ChatAnthropic:
    """Create the Anthropic chat model from settings."""
    if not settings.anthropic_api_key:
        raise ValueError("ANTHROPIC_API_KEY environment variable is required")

    return ChatAnthropic(
        model=settings.model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        anthropic_api_key=settings.anthropic_api_key,
    )


class ChatService:
    """Handles one chat request end to end on a single output channel."""

    def __init__(
        self,
        model: BaseChatModel,
        registry: ToolsRegistry | None = None,
        settings: Settings | None = None,
    ):
        """Initialize chat service.

        Args:
            model: Chat model used by the graph
            registry: Tool catalog and executions (defaults to the default tools over an
                in-memory scheduler); its agent is handed to every executor
            settings: Settings (defaults to global instance)
        """
        self.settings = settings or get_settings()
        self.registry = registry or ToolsRegistry(agent=InMemoryScheduler())
        self.agent = self.registry.agent
        self.processor = ToolCallProcessor(
            self.registry.tools,
            self.registry.executions,
            agent=self.agent,
            concurrent=self.settings.concurrent_tool_execution,
        )
        self.graph = create_chat_graph(model, self.registry)

        logger.info("ChatService initialized")

    async def handle_chat(self, messages: Sequence[Message], channel: OutputChannel) -> list[Message]:
        """Resolve decided tool calls, then stream the assistant's reply.

        Returns:
            The conversation after tool call resolution
        """
        logger.info(f"Handling chat with {len(messages)} messages")

        conversation = await self.processor.process(messages, channel)
        model_messages = to_langchain_messages(conversation)
        if not model_messages:
            logger.warning("Nothing to send to the model")
            channel.write(FinishMessageStreamPart(finish_reason="stop"))
            return conversation

        channel.write(StartStepStreamPart(message_id=cuid()))

        final: dict[str, Any] = {}
        had_error = False
        config = {"recursion_limit": self.settings.recursion_limit}
        async for update in self.graph.astream(
            {"messages": model_messages},
            config,
            stream_mode="updates",
        ):
            for node, values in update.items():
                if not isinstance(values, dict):
                    continue
                if node == "error" and values.get("messages"):
                    had_error = True
                for message in values.get("messages", []):
                    for part in to_stream_parts(message):
                        channel.write(part)
                final.update(values)

        if had_error:
            finish_reason = "error"
        elif final.get("pending_confirmations"):
            finish_reason = "tool-calls"
        else:
            finish_reason = "stop"

        usage = UsageStats(
            prompt_tokens=final.get("total_input_tokens", 0),
            completion_tokens=final.get("total_output_tokens", 0),
        )
        logger.info(
            f"Chat finished ({finish_reason}) - Input tokens: {usage.prompt_tokens}, "
            f"Output tokens: {usage.completion_tokens}"
        )
        channel.write(FinishMessageStreamPart(finish_reason=finish_reason, usage=usage))
        return conversation


_chat_service: ChatService | None = None


def get_chat_service() -> ChatService:
    """Get or create chat service instance."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService(create_chat_model(get_settings()))
    return _chat_service
