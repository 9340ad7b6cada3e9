import asyncio
import json
from typing import List

import pytest

from conftest import FakeTransport
from tool_relay.relay_core import (
    CONFIRM_REQUEST_TOPIC,
    CONFIRM_RESPONSE_TOPIC,
    CancellationToken,
    ConfirmationChannel,
    ConfirmationRequest,
    ConfirmationResponse,
    DuplicateRequestError,
    EventBus,
    InMemoryTranscript,
    NetworkError,
    ToolCallCoordinator,
    ToolCallRequest,
    ToolCallState,
    ToolEvent,
    ToolExecutor,
    ToolInvocation,
)


def make_coordinator(
    bus: EventBus, transport: FakeTransport, timeout: float = 30.0, transcript: InMemoryTranscript | None = None
) -> ToolCallCoordinator:
    channel = ConfirmationChannel(bus, timeout=timeout)
    return ToolCallCoordinator(channel, ToolExecutor(transport), bus=bus, transcript=transcript)


def answer_all(bus: EventBus, accepted: bool) -> None:
    def on_request(request: ConfirmationRequest) -> None:
        bus.publish(CONFIRM_RESPONSE_TOPIC, ConfirmationResponse(id=request.id, accepted=accepted))

    bus.subscribe(CONFIRM_REQUEST_TOPIC, on_request)


@pytest.mark.asyncio
async def test_confirmed_delete_completes_with_one_snapshot(bus: EventBus, tool_events: List[ToolEvent]) -> None:
    transport = FakeTransport(responses={"tasky_delete_task": [{"type": "text", "text": "Task deleted"}]})
    transcript = InMemoryTranscript()
    coordinator = make_coordinator(bus, transport, transcript=transcript)
    answer_all(bus, True)

    invocation = await coordinator.submit(ToolCallRequest("tasky_delete_task", {"id": "t1"}, call_id="c1"))

    assert invocation.state is ToolCallState.COMPLETE
    assert invocation.output == "Task deleted"
    assert transport.calls == [("tasky_delete_task", {"id": "t1"})]
    assert [(e.id, e.phase) for e in tool_events] == [("c1", "start"), ("c1", "done")]
    assert len(coordinator.snapshots) == 1
    assert json.loads(transcript.records[0].content)["output"] == "Task deleted"
    assert coordinator.live_ids == frozenset()


@pytest.mark.asyncio
async def test_rejected_call_never_executes(bus: EventBus, tool_events: List[ToolEvent]) -> None:
    transport = FakeTransport()
    coordinator = make_coordinator(bus, transport)
    answer_all(bus, False)

    invocation = await coordinator.submit(ToolCallRequest("tasky_delete_task", {"id": "t1"}, call_id="c1"))

    assert invocation.state is ToolCallState.CANCELLED
    assert invocation.error is not None
    assert invocation.error.message == "User cancelled"
    assert transport.calls == []
    assert [e.phase for e in tool_events] == ["start", "error"]
    assert coordinator.snapshots == []


@pytest.mark.asyncio
async def test_read_only_call_skips_confirmation(
    bus: EventBus, confirm_requests: List[ConfirmationRequest]
) -> None:
    transport = FakeTransport(responses={"tasky_list_tasks": "[]"})
    coordinator = make_coordinator(bus, transport)

    invocation = await coordinator.submit(ToolCallRequest("tasky_list_tasks", {}))

    assert invocation.state is ToolCallState.COMPLETE
    assert invocation.output == "[]"
    assert confirm_requests == []


@pytest.mark.asyncio
async def test_confirmation_timeout_cancels_call(bus: EventBus) -> None:
    transport = FakeTransport()
    coordinator = make_coordinator(bus, transport, timeout=0.05)

    invocation = await coordinator.submit(ToolCallRequest("tasky_delete_task", {"id": "t1"}))

    assert invocation.state is ToolCallState.CANCELLED
    assert invocation.error is not None
    assert invocation.error.kind == "timeout"
    assert transport.calls == []


@pytest.mark.asyncio
async def test_remote_failure_ends_in_error(bus: EventBus, tool_events: List[ToolEvent]) -> None:
    transport = FakeTransport(error=NetworkError("connection refused"))
    coordinator = make_coordinator(bus, transport)

    invocation = await coordinator.submit(ToolCallRequest("tasky_list_tasks", {}))

    assert invocation.state is ToolCallState.ERROR
    assert invocation.error is not None
    assert invocation.error.kind == "network"
    assert invocation.error.message == "MCP error: connection refused"
    assert tool_events[-1].error == "MCP error: connection refused"
    assert coordinator.snapshots == []


@pytest.mark.asyncio
async def test_cancel_during_execution(bus: EventBus) -> None:
    transport = FakeTransport(delay=10)
    coordinator = make_coordinator(bus, transport)
    token = CancellationToken()
    task = coordinator.submit(ToolCallRequest("tasky_list_tasks", {}), token)
    await asyncio.sleep(0.01)

    token.cancel()
    invocation = await task

    assert invocation.state is ToolCallState.CANCELLED
    assert transport.cancelled


@pytest.mark.asyncio
async def test_cancel_fans_out_to_every_pending_confirmation(bus: EventBus) -> None:
    transport = FakeTransport()
    coordinator = make_coordinator(bus, transport)
    token = CancellationToken()
    tasks = [
        coordinator.submit(ToolCallRequest("tasky_delete_task", {"id": f"t{i}"}, call_id=f"c{i}"), token)
        for i in range(3)
    ]
    await asyncio.sleep(0.01)
    assert coordinator.live_ids == frozenset({"c0", "c1", "c2"})

    token.cancel()
    invocations = await asyncio.gather(*tasks)

    assert all(inv.state is ToolCallState.CANCELLED for inv in invocations)
    assert bus.listener_count(CONFIRM_RESPONSE_TOPIC) == 0
    assert transport.calls == []
    assert coordinator.live_ids == frozenset()


@pytest.mark.asyncio
async def test_cancelled_token_before_start(bus: EventBus, tool_events: List[ToolEvent]) -> None:
    coordinator = make_coordinator(bus, FakeTransport())
    token = CancellationToken()
    token.cancel()

    invocation = await coordinator.submit(ToolCallRequest("tasky_list_tasks", {}), token)

    assert invocation.state is ToolCallState.CANCELLED
    assert [e.phase for e in tool_events] == ["start", "error"]


@pytest.mark.asyncio
async def test_same_id_cannot_run_twice_concurrently(bus: EventBus) -> None:
    coordinator = make_coordinator(bus, FakeTransport())
    token = CancellationToken()
    first = coordinator.submit(ToolCallRequest("tasky_delete_task", {"id": "t1"}, call_id="dup"), token)
    await asyncio.sleep(0.01)

    with pytest.raises(DuplicateRequestError):
        await coordinator.run(ToolInvocation(id="dup", name="tasky_delete_task", arguments={"id": "t1"}))

    token.cancel()
    assert (await first).state is ToolCallState.CANCELLED


@pytest.mark.asyncio
async def test_wait_all_collects_finished_invocations(bus: EventBus) -> None:
    coordinator = make_coordinator(bus, FakeTransport())
    coordinator.submit(ToolCallRequest("tasky_list_tasks", {}, call_id="a"))
    coordinator.submit(ToolCallRequest("tasky_get_task", {"id": "t1"}, call_id="b"))

    invocations = await coordinator.wait_all()

    assert sorted(inv.id for inv in invocations) == ["a", "b"]
    assert all(inv.state is ToolCallState.COMPLETE for inv in invocations)


@pytest.mark.asyncio
async def test_one_cancel_aborts_confirmation_and_execution_together(
    bus: EventBus, tool_events: List[ToolEvent], confirm_requests: List[ConfirmationRequest]
) -> None:
    transport = FakeTransport(delay=10)
    channel = ConfirmationChannel(bus)
    coordinator = ToolCallCoordinator(channel, ToolExecutor(transport), bus=bus)
    token = CancellationToken()
    running = coordinator.submit(ToolCallRequest("tasky_list_tasks", {}, call_id="a"), token)
    waiting = coordinator.submit(ToolCallRequest("tasky_delete_task", {"id": "t1"}, call_id="b"), token)
    await asyncio.sleep(0.01)
    assert transport.calls == [("tasky_list_tasks", {})]
    assert [r.id for r in confirm_requests] == ["b"]
    assert channel.pending_ids == frozenset({"b"})

    token.cancel()
    invocations = await asyncio.gather(running, waiting)

    assert [inv.state for inv in invocations] == [ToolCallState.CANCELLED, ToolCallState.CANCELLED]
    assert transport.cancelled
    assert channel.pending_ids == frozenset()
    assert bus.listener_count(CONFIRM_RESPONSE_TOPIC) == 0
    for invocation_id in ("a", "b"):
        assert [e.phase for e in tool_events if e.id == invocation_id] == ["start", "error"]
