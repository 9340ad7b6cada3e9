import asyncio
import itertools
from typing import Callable, List

import pytest

from conftest import FakeTransport, ScriptedSource, call, finish, text
from tool_relay.llm_impl import OpenAIToolRegistry
from tool_relay.relay_core import (
    INTERRUPTED_MARKER,
    CancellationToken,
    ConfirmationChannel,
    EventBus,
    RepairPolicy,
    SchemaError,
    StreamingTokenConsumer,
    ToolCallCoordinator,
    ToolCallState,
    ToolExecutor,
)

MESSAGES = [{"role": "user", "content": "hi"}]
TOOLS = [{"type": "function", "function": {"name": "tasky_list_tasks", "parameters": {"type": "object"}}}]


def stepping_clock(step: float) -> Callable[[], float]:
    ticks = itertools.count()
    return lambda: next(ticks) * step


@pytest.mark.asyncio
async def test_flushes_on_line_break_and_at_completion() -> None:
    flushes: List[str] = []
    source = ScriptedSource([text("Hel"), text("lo\n"), text("World"), finish()])
    consumer = StreamingTokenConsumer(source, on_flush=flushes.append, clock=stepping_clock(0.01))

    result = await consumer.consume(MESSAGES)
    await consumer.wait_drained()

    assert flushes == ["Hello\n", "Hello\nWorld"]
    assert result.text == "Hello\nWorld"
    assert not result.interrupted


@pytest.mark.asyncio
async def test_flushes_when_interval_elapsed() -> None:
    flushes: List[str] = []
    source = ScriptedSource([text("a"), text("b"), text("c")])
    consumer = StreamingTokenConsumer(source, on_flush=flushes.append, clock=stepping_clock(0.1))

    result = await consumer.consume(MESSAGES)

    assert flushes == ["a", "ab", "abc", "abc"]
    assert result.text == "abc"


@pytest.mark.asyncio
async def test_stop_marks_partial_output_interrupted() -> None:
    flushes: List[str] = []
    source = ScriptedSource([text("Partial"), 10.0, text(" never")])
    consumer = StreamingTokenConsumer(source, on_flush=flushes.append)
    token = CancellationToken()
    task = asyncio.create_task(consumer.consume(MESSAGES, token=token))
    await asyncio.sleep(0.01)

    token.cancel()
    result = await task

    assert result.interrupted
    assert result.text == "Partial" + INTERRUPTED_MARKER
    assert flushes[-1] == "Partial" + INTERRUPTED_MARKER


@pytest.mark.asyncio
async def test_stop_before_any_text_adds_no_marker() -> None:
    source = ScriptedSource([10.0])
    consumer = StreamingTokenConsumer(source)
    token = CancellationToken()
    task = asyncio.create_task(consumer.consume(MESSAGES, token=token))
    await asyncio.sleep(0.01)

    token.cancel()
    result = await task

    assert result.interrupted
    assert result.text == ""


@pytest.mark.asyncio
async def test_schema_rejection_retries_once_without_tools() -> None:
    source = ScriptedSource([SchemaError("invalid function schema", status_code=400)], [text("Hi"), finish()])
    consumer = StreamingTokenConsumer(source)

    result = await consumer.consume(MESSAGES, tools=TOOLS)

    assert result.text == "Hi"
    assert result.used_tools is False
    assert [tools for _, tools in source.calls] == [TOOLS, None]
    assert source.calls[0][0] == source.calls[1][0]


@pytest.mark.asyncio
async def test_schema_rejection_without_tools_is_raised() -> None:
    source = ScriptedSource([SchemaError("invalid", status_code=400)])

    with pytest.raises(SchemaError):
        await StreamingTokenConsumer(source).consume(MESSAGES)
    assert len(source.calls) == 1


@pytest.mark.asyncio
async def test_failed_retry_is_raised() -> None:
    source = ScriptedSource([SchemaError("invalid")], [SchemaError("still invalid")])

    with pytest.raises(SchemaError, match="still invalid"):
        await StreamingTokenConsumer(source).consume(MESSAGES, tools=TOOLS)
    assert len(source.calls) == 2


@pytest.mark.asyncio
async def test_provider_error_mid_stream_marks_output_and_propagates() -> None:
    flushes: List[str] = []
    source = ScriptedSource([text("Hello"), RuntimeError("connection reset")])
    consumer = StreamingTokenConsumer(source, on_flush=flushes.append)

    with pytest.raises(RuntimeError):
        await consumer.consume(MESSAGES)
    assert flushes[-1] == "Hello" + INTERRUPTED_MARKER


@pytest.mark.asyncio
async def test_tool_calls_are_repaired_and_dispatched(bus: EventBus, registry: OpenAIToolRegistry) -> None:
    transport = FakeTransport(responses={"tasky_list_tasks": "[]"})
    coordinator = ToolCallCoordinator(ConfirmationChannel(bus), ToolExecutor(transport), bus=bus)
    source = ScriptedSource(
        [
            text("Checking"),
            call("tasky_list_tasks", {}, "c1"),
            call("unknownTool", {}, "c2"),
            finish("tool_calls"),
        ]
    )
    consumer = StreamingTokenConsumer(source, coordinator=coordinator, repair=RepairPolicy(registry))

    result = await consumer.consume(MESSAGES, tools=TOOLS)
    invocations = await asyncio.gather(*result.tool_tasks)

    assert result.text == "Checking"
    assert result.dropped_calls == 1
    assert [inv.id for inv in invocations] == ["c1"]
    assert invocations[0].state is ToolCallState.COMPLETE
    assert transport.calls == [("tasky_list_tasks", {})]


@pytest.mark.asyncio
async def test_text_keeps_streaming_while_a_call_awaits_confirmation(
    bus: EventBus, registry: OpenAIToolRegistry
) -> None:
    transport = FakeTransport(responses={"tasky_delete_task": "Task deleted"})
    channel = ConfirmationChannel(bus)
    coordinator = ToolCallCoordinator(channel, ToolExecutor(transport), bus=bus)
    source = ScriptedSource([call("tasky_delete_task", {"id": "t1"}, "c1"), text("Waiting for your approval."), finish()])
    consumer = StreamingTokenConsumer(source, coordinator=coordinator, repair=RepairPolicy(registry))

    result = await consumer.consume(MESSAGES, tools=TOOLS)

    assert result.text == "Waiting for your approval."
    assert not result.tool_tasks[0].done()
    assert channel.pending_ids == frozenset({"c1"})

    channel.respond("c1", True)
    invocation = await result.tool_tasks[0]

    assert invocation.state is ToolCallState.COMPLETE
    assert invocation.output == "Task deleted"


@pytest.mark.asyncio
async def test_trailing_chunks_after_finish_are_drained() -> None:
    source = ScriptedSource([text("a"), finish(), text("trailing")])
    consumer = StreamingTokenConsumer(source)

    result = await consumer.consume(MESSAGES)
    await consumer.wait_drained()

    assert result.text == "a"
    assert source.exhausted


@pytest.mark.asyncio
async def test_calls_dispatched_before_schema_rejection_survive_the_retry(
    bus: EventBus, registry: OpenAIToolRegistry
) -> None:
    transport = FakeTransport(responses={"tasky_list_tasks": "[]"})
    coordinator = ToolCallCoordinator(ConfirmationChannel(bus), ToolExecutor(transport), bus=bus)
    source = ScriptedSource(
        [call("tasky_list_tasks", {}, "c1"), SchemaError("invalid function schema", status_code=400)],
        [text("Hi"), finish()],
    )
    consumer = StreamingTokenConsumer(source, coordinator=coordinator, repair=RepairPolicy(registry))

    result = await consumer.consume(MESSAGES, tools=TOOLS)
    invocations = await asyncio.gather(*result.tool_tasks)

    assert result.used_tools is False
    assert result.text == "Hi"
    assert [inv.id for inv in invocations] == ["c1"]
    assert invocations[0].state is ToolCallState.COMPLETE
