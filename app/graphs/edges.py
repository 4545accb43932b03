"""Edge logic and routing for the chat graph."""

from typing import Literal

from app.graphs.state import ChatState
from app.utils.logging import get_logger

logger = get_logger(__name__)


def route_agent_output(state: ChatState) -> Literal["tools", "error", "end"]:
    """Route from the agent node.

    Automatic tool calls go to the tools node. Calls that need confirmation
    end the turn so the user can decide.
    """
    logger.debug(f"Routing from agent node. Next step: {state.next_step}")

    if state.error or state.next_step == "error":
        logger.warning(f"Routing to error handler due to: {state.error}")
        return "error"

    if state.next_step == "tools":
        return "tools"

    return "end"


def route_tool_output(state: ChatState) -> Literal["agent", "error", "end"]:
    """Route from the tools node back to the agent unless the turn is over."""
    if state.error:
        return "error"
    if state.next_step == "end":
        return "end"
    return "agent"


def route_error_output(state: ChatState) -> Literal["agent", "end"]:
    """Retry the agent after a recoverable error, otherwise end."""
    if state.next_step == "agent" and not state.error:
        return "agent"
    return "end"
