import asyncio
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

from tool_relay.llm_impl import OpenAIToolRegistry
from tool_relay.relay_core import (
    CONFIRM_REQUEST_TOPIC,
    TOOL_EVENT_TOPIC,
    ConfirmationRequest,
    EventBus,
    StreamEvent,
    ToolCallRequest,
    ToolEvent,
)

TASKY_TOOLS = [
    ("tasky_list_tasks", "List all tasks.", {"type": "object", "properties": {}}),
    (
        "tasky_delete_task",
        "Delete a task by id.",
        {"type": "object", "properties": {"id": {"type": "string"}}, "required": ["id"]},
    ),
    (
        "tasky_create_task",
        "Create a task.",
        {
            "type": "object",
            "properties": {"title": {"type": "string"}, "due": {"type": "string"}},
            "required": ["title"],
        },
    ),
]


class FakeTransport:
    """Records tool calls and answers them from a canned table."""

    def __init__(
        self, responses: Optional[Dict[str, Any]] = None, delay: float = 0.0, error: Optional[Exception] = None
    ) -> None:
        self.responses = responses or {}
        self.delay = delay
        self.error = error
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.cancelled = False

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> Any:
        self.calls.append((name, dict(arguments)))
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.responses.get(name, "ok")


class ScriptedSource:
    """
    Replays one script per ``stream()`` call.

    Script items are StreamEvents (yielded), exceptions (raised) or floats
    (slept on, to keep the stream open).
    """

    def __init__(self, *scripts: List[Any]) -> None:
        self.scripts = list(scripts)
        self.calls: List[Tuple[List[Dict[str, Any]], Any]] = []
        self.exhausted = False

    async def stream(self, messages: Sequence[Dict[str, Any]], tools: Optional[Any] = None) -> AsyncIterator[StreamEvent]:
        self.calls.append((list(messages), tools))
        script = self.scripts[len(self.calls) - 1]
        for item in script:
            if isinstance(item, BaseException):
                raise item
            if isinstance(item, float):
                await asyncio.sleep(item)
                continue
            yield item
        self.exhausted = True


def text(content: str) -> StreamEvent:
    return StreamEvent(type="text", content=content)


def call(name: str, arguments: Any, call_id: Optional[str] = None, malformed: bool = False) -> StreamEvent:
    return StreamEvent(
        type="tool_call", tool_call=ToolCallRequest(name=name, arguments=arguments, call_id=call_id, malformed=malformed)
    )


def finish(reason: str = "stop") -> StreamEvent:
    return StreamEvent(type="finish", finish_reason=reason)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def registry() -> OpenAIToolRegistry:
    registry = OpenAIToolRegistry()
    for name, description, parameters in TASKY_TOOLS:
        registry.register(name, description=description, parameters=parameters)
    return registry


@pytest.fixture
def tool_events(bus: EventBus) -> List[ToolEvent]:
    events: List[ToolEvent] = []
    bus.subscribe(TOOL_EVENT_TOPIC, events.append)
    return events


@pytest.fixture
def confirm_requests(bus: EventBus) -> List[ConfirmationRequest]:
    requests: List[ConfirmationRequest] = []
    bus.subscribe(CONFIRM_REQUEST_TOPIC, requests.append)
    return requests
