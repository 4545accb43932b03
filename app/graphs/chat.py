"""Chat graph: model turns interleaved with automatic tool runs."""

from datetime import datetime

from langchain_core.language_models import BaseChatModel
from langgraph.graph import END, StateGraph

from app.graphs.edges import route_agent_output, route_error_output, route_tool_output
from app.graphs.nodes import create_agent_node, create_tools_node, error_handler_node
from app.graphs.state import ChatState
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)


def get_system_prompt(now: datetime | None = None) -> str:
    """Generate the system prompt for the current time."""
    now = now or datetime.now().astimezone()

    return f"""You are a helpful assistant that can do various tasks.

Some tools need the user's confirmation before they run. When you call one of
them, the user is asked to approve or deny it; do not ask for permission in
text as well. If a tool result says the user denied access, acknowledge it and
do not call the tool again unless asked.

Scheduling:
- Current date and time: {now.isoformat(timespec="seconds")}
- If the user asks to schedule a task, use the scheduleTask tool. Pick "scheduled"
  for a specific date and time, "delayed" for a delay in seconds, "cron" for
  recurring tasks and "no-schedule" when no time was given."""


def create_chat_graph(model: BaseChatModel, registry: ToolsRegistry):
    """Create the chat graph.

    The graph runs the model, executes automatic tools it asks for and loops
    back to the model until it answers in text or requests a tool that needs
    the user's confirmation.

    Args:
        model: Chat model; the registry's tools are bound to it here
        registry: Tool catalog; its automatic tools run in the tools node

    Returns:
        Compiled LangGraph workflow
    """
    logger.info("Creating chat graph")

    bound_model = model.bind_tools(registry.get_model_tools())

    workflow = StateGraph(ChatState)

    workflow.add_node("agent", create_agent_node(bound_model, registry, get_system_prompt))
    workflow.add_node("tools", create_tools_node(registry))
    workflow.add_node("error", error_handler_node)

    workflow.set_entry_point("agent")

    workflow.add_conditional_edges(
        "agent",
        route_agent_output,
        {
            "tools": "tools",
            "error": "error",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "tools",
        route_tool_output,
        {
            "agent": "agent",
            "error": "error",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "error",
        route_error_output,
        {
            "agent": "agent",
            "end": END,
        },
    )

    compiled = workflow.compile()

    logger.info("Chat graph created successfully")
    return compiled
