"""Resolution of tool calls that a human has approved or denied.

The processor walks a conversation in order. Every tool invocation whose
result holds an :class:`Approval` decision is driven to its terminal result:
approved calls run their registered executor, denied calls get a fixed denial
error. One :class:`ToolResultEvent` is written per resolved invocation, in scan
order. Invocations already terminal are left alone, so a second pass over the
output is a no-op.
"""

import asyncio
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from typing import assert_never

from app.confirmation.approval import (
    MISSING_EXECUTOR_RESULT,
    Approval,
    AwaitingExecution,
    Denied,
    Pending,
    ReservedResultError,
    Resolved,
    TerminalState,
    classify,
    execution_failed_result,
    unknown_tool_result,
)
from app.models.messages import Message, ToolInvocation, ToolInvocationPart
from app.models.stream import ToolResultEvent
from app.services.scheduler import AgentContext
from app.streaming.channel import OutputChannel
from app.tools.base import ExecutionContext, Executor, ToolDefinition
from app.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _Resolution:
    message_index: int
    part_index: int
    invocation: ToolInvocation
    outcome: Awaitable[TerminalState]


class ToolCallProcessor:
    """Resolves pending human decisions in a conversation."""

    def __init__(
        self,
        tools: Mapping[str, ToolDefinition],
        executions: Mapping[str, Executor],
        agent: AgentContext | None = None,
        concurrent: bool = True,
    ):
        """Initialize the processor.

        Args:
            tools: Tool catalog, read only
            executions: Executors for confirmation-gated tools
            agent: Agent context handed to every executor
            concurrent: Start all approved executions at once instead of one by one
        """
        self.tools = tools
        self.executions = executions
        self.agent = agent
        self.concurrent = concurrent

    async def process(self, messages: Sequence[Message], channel: OutputChannel) -> list[Message]:
        """Return the conversation with every pending decision resolved."""
        resolutions = self._collect(messages)
        if not resolutions:
            return list(messages)

        logger.info(f"Resolving {len(resolutions)} tool call(s) awaiting a decision")

        result = list(messages)
        try:
            for resolution in resolutions:
                terminal = await resolution.outcome
                invocation = resolution.invocation.model_copy(update={"result": terminal.as_result()})
                result[resolution.message_index] = _replace_invocation(
                    result[resolution.message_index], resolution.part_index, invocation
                )
                channel.write(
                    ToolResultEvent(
                        tool_call_id=invocation.tool_call_id,
                        tool_name=invocation.tool_name,
                        result=invocation.result,
                    )
                )
        finally:
            outstanding = []
            for resolution in resolutions:
                if isinstance(resolution.outcome, asyncio.Task):
                    if not resolution.outcome.done():
                        resolution.outcome.cancel()
                        outstanding.append(resolution.outcome)
                elif asyncio.iscoroutine(resolution.outcome):
                    # Never awaited because an earlier step raised
                    resolution.outcome.close()
            if outstanding:
                logger.warning(f"Cancelling {len(outstanding)} unfinished tool execution(s)")
                await asyncio.gather(*outstanding, return_exceptions=True)

        return result

    def _collect(self, messages: Sequence[Message]) -> list[_Resolution]:
        resolutions: list[_Resolution] = []
        for message_index, message in enumerate(messages):
            if not message.parts:
                continue
            for part_index, part in enumerate(message.parts):
                if not isinstance(part, ToolInvocationPart):
                    continue

                invocation = part.tool_invocation
                state = classify(invocation)
                if isinstance(state, Pending | Denied | Resolved):
                    continue
                if not isinstance(state, AwaitingExecution):
                    assert_never(state)

                context = ExecutionContext(
                    tool_call_id=invocation.tool_call_id,
                    messages=list(messages[: message_index + 1]),
                    agent=self.agent,
                )
                outcome = self._resolve(invocation, state.decision, context)
                if self.concurrent:
                    outcome = asyncio.create_task(outcome, name=f"tool-call-{invocation.tool_call_id}")
                resolutions.append(_Resolution(message_index, part_index, invocation, outcome))
        return resolutions

    async def _resolve(
        self, invocation: ToolInvocation, decision: Approval, context: ExecutionContext
    ) -> TerminalState:
        tool_name = invocation.tool_name

        if decision is Approval.NO:
            logger.info(f"User denied {tool_name} (call {invocation.tool_call_id})")
            return Denied()
        if decision is not Approval.YES:
            assert_never(decision)

        executor = self.executions.get(tool_name)
        if executor is None:
            if tool_name in self.tools:
                logger.error(f"No execution registered for confirmed tool {tool_name}")
                return Resolved(MISSING_EXECUTOR_RESULT, is_error=True)
            logger.error(f"Confirmed call to unknown tool {tool_name}")
            return Resolved(unknown_tool_result(tool_name), is_error=True)

        logger.info(f"Executing confirmed tool {tool_name} (call {invocation.tool_call_id})")
        try:
            value = await executor(invocation.args, context)
        except Exception as e:
            logger.error(f"Tool {tool_name} failed: {e}", exc_info=True)
            return Resolved(execution_failed_result(e), is_error=True)

        if Approval.parse(value) is not None:
            # A decision literal as a result would read as a fresh decision on the next pass
            logger.error(f"Tool {tool_name} returned a reserved confirmation value")
            return Resolved(execution_failed_result(ReservedResultError(value)), is_error=True)

        logger.debug(f"Tool {tool_name} succeeded: {str(value)[:100]}...")
        return Resolved(value)


def _replace_invocation(message: Message, part_index: int, invocation: ToolInvocation) -> Message:
    parts = list(message.parts or [])
    part = parts[part_index]
    parts[part_index] = part.model_copy(update={"tool_invocation": invocation})
    return message.model_copy(update={"parts": parts})


async def process_tool_calls(
    messages: Sequence[Message],
    channel: OutputChannel,
    tools: Mapping[str, ToolDefinition],
    executions: Mapping[str, Executor],
    agent: AgentContext | None = None,
    concurrent: bool = True,
) -> list[Message]:
    """Resolve approved and denied tool calls in ``messages``.

    Writes one update event per resolved call to ``channel`` and returns the
    conversation with each of those calls in its terminal form.
    """
    processor = ToolCallProcessor(tools, executions, agent=agent, concurrent=concurrent)
    return await processor.process(messages, channel)
