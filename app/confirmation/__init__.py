"""Human confirmation of tool calls."""

from app.confirmation.approval import DENIED_RESULT, Approval, classify
from app.confirmation.processor import ToolCallProcessor, process_tool_calls

__all__ = ["DENIED_RESULT", "Approval", "ToolCallProcessor", "classify", "process_tool_calls"]
