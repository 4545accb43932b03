"""Tests for resolving approved and denied tool calls."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.confirmation.approval import DENIED_RESULT, MISSING_EXECUTOR_RESULT, Approval
from app.confirmation.processor import ToolCallProcessor, process_tool_calls
from app.models.messages import Message, OpaquePart
from app.models.stream import ToolResultEvent
from app.tools.base import ExecutionContext, ToolDefinition
from app.tools.weather import WeatherInput, create_weather_tool
from tests.builders import tool_message, user_message, written

WEATHER_TOOLS = {"getWeatherInformation": create_weather_tool()}


def _tool(name: str) -> ToolDefinition:
    return ToolDefinition(name=name, description=name, input_schema_class=WeatherInput)


class TestPassThrough:
    """Conversations with nothing to resolve come back unchanged."""

    @pytest.mark.asyncio
    async def test_messages_without_tool_calls(self, channel):
        """Test plain user/assistant messages pass through."""
        messages = [
            user_message("1", "Hello"),
            Message(id="2", role="assistant", content="Hi there!"),
        ]

        result = await process_tool_calls(messages, channel, {}, {})

        assert result == messages
        channel.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_message_without_parts(self, channel):
        """Test a message with no parts field."""
        messages = [user_message("1", "Hello")]

        result = await process_tool_calls(messages, channel, {}, {})

        assert result == messages
        assert result[0].parts is None
        channel.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_call_state_is_skipped(self, channel):
        """Test that a call the user has not decided on is left alone."""
        executor = AsyncMock()
        messages = [tool_message("1", "getWeatherInformation", {"city": "London"}, "call")]

        result = await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        executor.assert_not_called()
        channel.write.assert_not_called()
        assert result == messages

    @pytest.mark.asyncio
    async def test_partial_call_state_is_skipped(self, channel):
        """Test that a call still streaming its arguments is left alone."""
        executor = AsyncMock()
        messages = [tool_message("1", "getWeatherInformation", {}, "partial-call")]

        result = await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        executor.assert_not_called()
        channel.write.assert_not_called()
        assert result == messages

    @pytest.mark.asyncio
    async def test_terminal_result_is_skipped(self, channel):
        """Test that an already resolved call is never re-resolved."""
        executor = AsyncMock()
        messages = [
            tool_message("1", "getWeatherInformation", {"city": "Paris"}, "result", result="Sunny in Paris")
        ]

        result = await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        executor.assert_not_called()
        channel.write.assert_not_called()
        assert result == messages

    @pytest.mark.asyncio
    async def test_structured_terminal_result_is_skipped(self, channel):
        """Test that a structured (non-string) result is terminal."""
        messages = [tool_message("1", "getScheduledTasks", {}, "result", result=[{"id": "t1"}])]

        result = await process_tool_calls(messages, channel, {}, {})

        assert result == messages
        channel.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_part_is_left_untouched(self, channel):
        """Test that a tool-invocation part with an unexpected shape is carried through."""
        message = Message.model_validate(
            {
                "id": "1",
                "role": "assistant",
                "content": "",
                "parts": [
                    {"type": "tool-invocation", "toolInvocation": "not-an-object"},
                    {"type": "text", "text": "Checking", "extra": {"kept": True}},
                ],
            }
        )

        result = await process_tool_calls([message], channel, {}, {})

        assert result == [message]
        assert all(isinstance(part, OpaquePart) for part in result[0].parts)
        assert result[0].to_wire()["parts"][1] == {"type": "text", "text": "Checking", "extra": {"kept": True}}
        channel.write.assert_not_called()


class TestApprovedCalls:
    """Tests for calls the user approved."""

    @pytest.mark.asyncio
    async def test_approved_call_runs_executor(self, channel):
        """Test the approve path with a registered executor."""
        executor = AsyncMock(return_value="Sunny in Paris")
        messages = [
            user_message("1", "What's the weather in Paris?"),
            tool_message("2", "getWeatherInformation", {"city": "Paris"}, "result", result=Approval.YES.value),
        ]

        result = await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        executor.assert_awaited_once()
        args, context = executor.await_args.args
        assert args == {"city": "Paris"}
        assert isinstance(context, ExecutionContext)
        assert context.tool_call_id == "call-1"
        assert list(context.messages) == messages

        invocation = result[1].parts[0].tool_invocation
        assert invocation.result == "Sunny in Paris"
        assert invocation.state == "result"

        channel.write.assert_called_once_with(
            ToolResultEvent(tool_call_id="call-1", tool_name="getWeatherInformation", result="Sunny in Paris")
        )

    @pytest.mark.asyncio
    async def test_context_holds_conversation_prefix(self, channel):
        """Test that executors see the conversation up to the carrying message."""
        executor = AsyncMock(return_value="ok")
        messages = [
            user_message("1", "Weather?"),
            tool_message("2", "getWeatherInformation", {"city": "Paris"}, "result", result=Approval.YES.value),
            user_message("3", "Thanks"),
        ]

        await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        _, context = executor.await_args.args
        assert [m.id for m in context.messages] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_agent_context_is_passed_explicitly(self, channel, scheduler):
        """Test that the agent handle reaches the executor through the context."""
        executor = AsyncMock(return_value="ok")
        messages = [tool_message("1", "getWeatherInformation", {"city": "Paris"}, "result", Approval.YES.value)]

        await process_tool_calls(
            messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor}, agent=scheduler
        )

        _, context = executor.await_args.args
        assert context.agent is scheduler

    @pytest.mark.asyncio
    async def test_structured_executor_result(self, channel):
        """Test that structured return values are kept as-is."""
        executor = AsyncMock(return_value={"temperature": 21, "sky": "clear"})
        messages = [tool_message("1", "getWeatherInformation", {"city": "Paris"}, "result", Approval.YES.value)]

        result = await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        assert result[0].parts[0].tool_invocation.result == {"temperature": 21, "sky": "clear"}

    @pytest.mark.asyncio
    async def test_executor_failure_is_contained(self, channel):
        """Test that one failing executor does not stop the others."""
        failing = AsyncMock(side_effect=RuntimeError("service unavailable"))
        working = AsyncMock(return_value="done")
        tools = {"flakyTool": _tool("flakyTool"), "steadyTool": _tool("steadyTool")}
        messages = [
            tool_message("1", "flakyTool", {"city": "Paris"}, "result", Approval.YES.value, call_id="call-1"),
            tool_message("2", "steadyTool", {"city": "Rome"}, "result", Approval.YES.value, call_id="call-2"),
        ]

        result = await process_tool_calls(
            messages, channel, tools, {"flakyTool": failing, "steadyTool": working}
        )

        assert result[0].parts[0].tool_invocation.result == "Error: Tool execution failed: service unavailable"
        assert result[1].parts[0].tool_invocation.result == "done"
        assert [event.tool_call_id for event in written(channel)] == ["call-1", "call-2"]

    @pytest.mark.asyncio
    async def test_failed_call_is_not_retried(self, channel):
        """Test that a call resolved to an error stays resolved on the next pass."""
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        messages = [tool_message("1", "getWeatherInformation", {"city": "Paris"}, "result", Approval.YES.value)]
        executions = {"getWeatherInformation": failing}

        first = await process_tool_calls(messages, channel, WEATHER_TOOLS, executions)
        second = await process_tool_calls(first, channel, WEATHER_TOOLS, executions)

        assert second == first
        assert failing.await_count == 1
        assert channel.write.call_count == 1

    @pytest.mark.asyncio
    async def test_missing_executor_resolves_to_error(self, channel):
        """Test that an approved catalog tool without an executor gets an explicit error."""
        messages = [tool_message("1", "getWeatherInformation", {"city": "Paris"}, "result", Approval.YES.value)]

        result = await process_tool_calls(messages, channel, WEATHER_TOOLS, {})

        assert result[0].parts[0].tool_invocation.result == MISSING_EXECUTOR_RESULT
        channel.write.assert_called_once_with(
            ToolResultEvent(tool_call_id="call-1", tool_name="getWeatherInformation", result=MISSING_EXECUTOR_RESULT)
        )

    @pytest.mark.asyncio
    async def test_unknown_tool_resolves_to_error(self, channel):
        """Test that an approved call to a tool outside the catalog gets an explicit error."""
        messages = [tool_message("1", "mystery", {}, "result", Approval.YES.value)]

        result = await process_tool_calls(messages, channel, {}, {})

        assert result[0].parts[0].tool_invocation.result == "Error: Unknown tool mystery"
        assert channel.write.call_count == 1


    @pytest.mark.asyncio
    async def test_reserved_result_becomes_error(self, channel):
        """Test that an executor returning a decision literal resolves to an error, once."""
        executor = AsyncMock(return_value=Approval.YES.value)
        executions = {"getWeatherInformation": executor}
        messages = [tool_message("1", "getWeatherInformation", {"city": "Paris"}, "result", Approval.YES.value)]

        first = await process_tool_calls(messages, channel, WEATHER_TOOLS, executions)
        second = await process_tool_calls(first, channel, WEATHER_TOOLS, executions)

        result = first[0].parts[0].tool_invocation.result
        assert result == "Error: Tool execution failed: result 'Yes, confirmed.' is reserved for confirmations"
        assert second == first
        assert executor.await_count == 1
        assert channel.write.call_count == 1


class TestDeniedCalls:
    """Tests for calls the user denied."""

    @pytest.mark.asyncio
    async def test_denied_call_is_not_executed(self, channel):
        """Test the deny path."""
        executor = AsyncMock()
        messages = [
            tool_message("1", "getWeatherInformation", {"city": "London"}, "result", result=Approval.NO.value)
        ]

        result = await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        executor.assert_not_called()
        assert result[0].parts[0].tool_invocation.result == "Error: User denied access to tool execution"
        channel.write.assert_called_once_with(
            ToolResultEvent(tool_call_id="call-1", tool_name="getWeatherInformation", result=DENIED_RESULT)
        )


class TestConversationShape:
    """Tests for order, shape and idempotence."""

    @staticmethod
    def _mixed_conversation() -> list[Message]:
        return [
            user_message("1", "Weather in Paris and London?"),
            tool_message("2", "getWeatherInformation", {"city": "Paris"}, "result", Approval.YES.value, "call-1"),
            tool_message("3", "getWeatherInformation", {"city": "London"}, "result", Approval.NO.value, "call-2"),
            tool_message("4", "getWeatherInformation", {"city": "Oslo"}, "call", call_id="call-3"),
            tool_message("5", "getWeatherInformation", {"city": "Rome"}, "result", "Cloudy in Rome", "call-4"),
            Message(id="6", role="assistant", content="Done."),
        ]

    @pytest.mark.asyncio
    async def test_ids_and_order_preserved(self, channel):
        """Test that output has the same messages in the same order."""
        messages = self._mixed_conversation()
        executor = AsyncMock(return_value="Sunny in Paris")

        result = await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        assert [m.id for m in result] == [m.id for m in messages]
        assert result[0] == messages[0]
        assert result[3] == messages[3]
        assert result[4] == messages[4]
        assert result[5] == messages[5]
        assert [event.tool_call_id for event in written(channel)] == ["call-1", "call-2"]

    @pytest.mark.asyncio
    async def test_input_is_not_mutated(self, channel):
        """Test that the caller's messages keep their sentinel values."""
        messages = self._mixed_conversation()
        executor = AsyncMock(return_value="Sunny in Paris")

        await process_tool_calls(messages, channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        assert messages[1].parts[0].tool_invocation.result == Approval.YES.value
        assert messages[2].parts[0].tool_invocation.result == Approval.NO.value

    @pytest.mark.asyncio
    async def test_second_pass_is_a_no_op(self, channel):
        """Test idempotence: processing the output again changes nothing."""
        executor = AsyncMock(return_value="Sunny in Paris")
        executions = {"getWeatherInformation": executor}

        first = await process_tool_calls(self._mixed_conversation(), channel, WEATHER_TOOLS, executions)
        writes_after_first = channel.write.call_count
        second = await process_tool_calls(first, channel, WEATHER_TOOLS, executions)

        assert second == first
        assert channel.write.call_count == writes_after_first
        assert executor.await_count == 1

    @pytest.mark.asyncio
    async def test_channel_is_never_closed(self, channel):
        """Test that the processor only writes; closing belongs to the caller."""
        executor = AsyncMock(return_value="Sunny in Paris")

        await process_tool_calls(
            self._mixed_conversation(), channel, WEATHER_TOOLS, {"getWeatherInformation": executor}
        )

        assert channel.write.call_count == 2
        channel.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_multiple_invocations_in_one_message(self, channel):
        """Test that several parts of one message are resolved in part order."""
        message = Message.model_validate(
            {
                "id": "1",
                "role": "assistant",
                "content": "",
                "parts": [
                    {"type": "text", "text": "Checking both"},
                    {
                        "type": "tool-invocation",
                        "toolInvocation": {
                            "toolCallId": "a",
                            "toolName": "getWeatherInformation",
                            "args": {"city": "Paris"},
                            "state": "result",
                            "result": Approval.NO.value,
                        },
                    },
                    {
                        "type": "tool-invocation",
                        "toolInvocation": {
                            "toolCallId": "b",
                            "toolName": "getWeatherInformation",
                            "args": {"city": "Rome"},
                            "state": "result",
                            "result": Approval.YES.value,
                        },
                    },
                ],
            }
        )
        executor = AsyncMock(return_value="Sunny in Rome")

        result = await process_tool_calls([message], channel, WEATHER_TOOLS, {"getWeatherInformation": executor})

        parts = result[0].parts
        assert parts[0] == message.parts[0]
        assert parts[1].tool_invocation.result == DENIED_RESULT
        assert parts[2].tool_invocation.result == "Sunny in Rome"
        assert [event.tool_call_id for event in written(channel)] == ["a", "b"]


class TestConcurrency:
    """Tests for concurrent execution with ordered events."""

    @pytest.mark.asyncio
    async def test_events_follow_scan_order(self, channel):
        """Test that a slow first call still produces the first event."""
        second_finished = asyncio.Event()

        async def slow(args, context):
            await second_finished.wait()
            return "slow done"

        async def fast(args, context):
            second_finished.set()
            return "fast done"

        tools = {"slowTool": _tool("slowTool"), "fastTool": _tool("fastTool")}
        messages = [
            tool_message("1", "slowTool", {"city": "A"}, "result", Approval.YES.value, call_id="call-1"),
            tool_message("2", "fastTool", {"city": "B"}, "result", Approval.YES.value, call_id="call-2"),
        ]

        processor = ToolCallProcessor(tools, {"slowTool": slow, "fastTool": fast}, concurrent=True)
        result = await asyncio.wait_for(processor.process(messages, channel), timeout=5)

        assert [event.tool_call_id for event in written(channel)] == ["call-1", "call-2"]
        assert result[0].parts[0].tool_invocation.result == "slow done"
        assert result[1].parts[0].tool_invocation.result == "fast done"

    @pytest.mark.asyncio
    async def test_sequential_mode_runs_one_at_a_time(self, channel):
        """Test that sequential mode finishes each call before starting the next."""
        order: list[str] = []

        async def record(args, context):
            order.append(f"start {context.tool_call_id}")
            await asyncio.sleep(0)
            order.append(f"end {context.tool_call_id}")
            return "ok"

        tools = {"getWeatherInformation": create_weather_tool()}
        messages = [
            tool_message("1", "getWeatherInformation", {"city": "A"}, "result", Approval.YES.value, "call-1"),
            tool_message("2", "getWeatherInformation", {"city": "B"}, "result", Approval.YES.value, "call-2"),
        ]

        processor = ToolCallProcessor(tools, {"getWeatherInformation": record}, concurrent=False)
        await processor.process(messages, channel)

        assert order == ["start call-1", "end call-1", "start call-2", "end call-2"]

    @pytest.mark.asyncio
    async def test_cancelling_the_pass_cancels_executions(self, channel):
        """Test that executions still running are cancelled with the pass."""
        started: list[str] = []
        cancelled: list[str] = []
        all_started = asyncio.Event()

        async def hang(args, context):
            started.append(context.tool_call_id)
            if len(started) == 2:
                all_started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(context.tool_call_id)
                raise

        tools = {"getWeatherInformation": create_weather_tool()}
        messages = [
            tool_message("1", "getWeatherInformation", {"city": "A"}, "result", Approval.YES.value, "call-1"),
            tool_message("2", "getWeatherInformation", {"city": "B"}, "result", Approval.YES.value, "call-2"),
        ]
        processor = ToolCallProcessor(tools, {"getWeatherInformation": hang}, concurrent=True)

        task = asyncio.create_task(processor.process(messages, channel))
        await asyncio.wait_for(all_started.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert sorted(cancelled) == ["call-1", "call-2"]
        channel.write.assert_not_called()
