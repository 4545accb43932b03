"""Node implementations for the chat graph."""

from collections.abc import Callable, Sequence
from typing import Any

from anthropic import RateLimitError
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage
from langchain_core.runnables import Runnable, RunnableConfig
from langgraph.prebuilt import ToolNode

from app.graphs.messages import content_to_text
from app.graphs.state import ChatState, ToolCall
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)

MAX_RETRIES = 3


def _with_system_prompt(system_prompt: str, messages: Sequence[BaseMessage]) -> list[BaseMessage]:
    """Fold every system message into one leading system message."""
    system_texts = [system_prompt]
    system_texts.extend(content_to_text(m.content) for m in messages if m.type == "system")
    non_system = [m for m in messages if m.type != "system"]
    return [SystemMessage(content="\n\n".join(system_texts)), *non_system]


def create_agent_node(model: Runnable, registry: ToolsRegistry, system_prompt: Callable[[], str]):
    """Build the node that calls the model.

    ``model`` must already have the catalog tools bound.
    """

    async def agent_node(state: ChatState, config: RunnableConfig) -> dict[str, Any]:
        logger.info(f"Agent node processing {len(state.messages)} messages")

        try:
            response = await model.ainvoke(_with_system_prompt(system_prompt(), state.messages), config)
        except RateLimitError as e:
            logger.warning(f"Agent node rate limited: {e}")
            return {"error": f"rate_limit: {e}", "next_step": "error"}
        except Exception as e:
            logger.error(f"Agent node error: {e}", exc_info=True)
            return {"error": str(e), "next_step": "error"}

        usage = getattr(response, "usage_metadata", None) or {}
        token_updates = {
            "total_input_tokens": state.total_input_tokens + usage.get("input_tokens", 0),
            "total_output_tokens": state.total_output_tokens + usage.get("output_tokens", 0),
        }

        tool_calls = [
            ToolCall(id=tc["id"] or "", name=tc["name"], args=tc["args"])
            for tc in getattr(response, "tool_calls", None) or []
        ]
        pending = [tc for tc in tool_calls if registry.requires_confirmation(tc.name)]
        runnable = [tc for tc in tool_calls if not registry.requires_confirmation(tc.name)]

        if pending:
            logger.info(f"Waiting for confirmation of: {', '.join(tc.name for tc in pending)}")
        if runnable:
            logger.info(f"Agent requesting {len(runnable)} automatic tool call(s)")

        return {
            "messages": [response],
            "pending_confirmations": pending,
            "next_step": "tools" if runnable else "end",
            "error": None,
            **token_updates,
        }

    return agent_node


def format_tool_error(e: Exception) -> str:
    """Tool result reported to the model when an automatic tool raises."""
    logger.error(f"Tool execution failed: {e}")
    return f"Error: {e!s}"


def create_tools_node(registry: ToolsRegistry):
    """Build the node that runs automatic tools requested in the last model turn.

    Execution goes through langgraph's ``ToolNode``. Calls that wait for a
    human decision are left out of its input so they stay unanswered.
    """
    tool_node = ToolNode(registry.get_langchain_tools(), handle_tool_errors=format_tool_error)

    async def tools_node(state: ChatState, config: RunnableConfig) -> dict[str, Any]:
        last_message = state.messages[-1] if state.messages else None
        if not isinstance(last_message, AIMessage) or not last_message.tool_calls:
            return {"error": "No tool calls to execute", "next_step": "error"}

        runnable = [tc for tc in last_message.tool_calls if not registry.requires_confirmation(tc["name"])]
        logger.info(f"Running {len(runnable)} automatic tool call(s)")

        output = await tool_node.ainvoke(
            {"messages": [last_message.model_copy(update={"tool_calls": runnable})]},
            config,
        )

        # A confirmation-gated call in the same turn leaves the conversation with the user
        return {
            "messages": output["messages"],
            "next_step": "end" if state.pending_confirmations else "agent",
        }

    return tools_node


def error_handler_node(state: ChatState) -> dict[str, Any]:
    """Handle errors and implement recovery strategies."""
    logger.error(f"Error handler invoked: {state.error}")

    error = state.error or "Unknown error occurred"

    if "rate_limit" in error.lower() or "rate limit" in error.lower():
        if state.retry_count < MAX_RETRIES:
            return {
                "retry_count": state.retry_count + 1,
                "error": None,
                "next_step": "agent",
            }
        logger.warning(f"Max retries ({state.retry_count}) reached, ending conversation")

    error_message = "I apologize, but I encountered an error. Please try rephrasing your request."
    return {
        "messages": [AIMessage(content=error_message)],
        "error": None,
        "next_step": "end",
    }
