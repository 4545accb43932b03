"""Human decisions on tool calls and the resolution state of an invocation.

The UI records a decision by writing one of the :class:`Approval` literals into
``result`` and resubmitting the conversation. Those literals are a contract with
the UI and must match byte-for-byte. Everywhere else the invocation is handled
through the tagged states below.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from app.models.messages import ToolInvocation


class Approval(StrEnum):
    """Sentinel results written by the UI once a human has decided."""

    YES = "Yes, confirmed."
    NO = "No, denied."

    @classmethod
    def parse(cls, value: Any) -> "Approval | None":
        """Return the decision encoded in a result value, if any."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


DENIED_RESULT = "Error: User denied access to tool execution"
MISSING_EXECUTOR_RESULT = "Error: No execute function found on tool"


class ReservedResultError(ValueError):
    """An executor returned one of the decision literals as its result."""

    def __init__(self, value: str):
        super().__init__(f"result {value!r} is reserved for confirmations")
        self.value = value


def unknown_tool_result(tool_name: str) -> str:
    return f"Error: Unknown tool {tool_name}"


def execution_failed_result(error: BaseException) -> str:
    return f"Error: Tool execution failed: {error}"


@dataclass(frozen=True)
class Pending:
    """Called by the model, no human decision yet."""


@dataclass(frozen=True)
class AwaitingExecution:
    """A human decided; the decision has not been enacted."""

    decision: Approval


@dataclass(frozen=True)
class Denied:
    """Terminal: the human denied the call."""

    def as_result(self) -> str:
        return DENIED_RESULT


@dataclass(frozen=True)
class Resolved:
    """Terminal: the call produced a value (or an error value)."""

    value: Any
    is_error: bool = False

    def as_result(self) -> Any:
        return self.value


InvocationState = Pending | AwaitingExecution | Denied | Resolved
TerminalState = Denied | Resolved


def classify(invocation: ToolInvocation) -> InvocationState:
    """Map the wire representation of an invocation to its resolution state."""
    if invocation.state != "result":
        return Pending()

    decision = Approval.parse(invocation.result)
    if decision is not None:
        return AwaitingExecution(decision)

    if invocation.result == DENIED_RESULT:
        return Denied()
    return Resolved(invocation.result)


def is_terminal(invocation: ToolInvocation) -> bool:
    return isinstance(classify(invocation), Denied | Resolved)
