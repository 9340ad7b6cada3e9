"""Normalized stream events and per-stream session state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Sequence

from ..cancellation import CancellationToken
from ..tools.models import ToolCallRequest, ToolInvocation


@dataclass(slots=True)
class StreamEvent:
    """One normalized item from a model stream.

    ``type`` is ``"text"`` (``content`` holds the delta), ``"tool_call"``
    (``tool_call`` holds the emission) or ``"finish"`` (the model finished its
    content; trailing transport chunks may still follow).
    """

    type: str
    content: Optional[str] = None
    tool_call: Optional[ToolCallRequest] = None
    finish_reason: Optional[str] = None


class ChatStreamSource(Protocol):
    """Provider adapter that opens one streamed completion."""

    def stream(
        self, messages: Sequence[Dict[str, Any]], tools: Optional[Any] = None
    ) -> AsyncIterator[StreamEvent]:
        """Stream the completion of ``messages``.

        Args:
            messages: Provider-agnostic ``{role, content}`` messages.
            tools: Provider tool payload, or None to send the request without tools.

        Raises:
            SchemaError: When the provider rejects the tool definitions.
        """
        ...


@dataclass
class StreamSession:
    """Mutable state of one stream consumption."""

    token: CancellationToken
    buffer: str = ""
    last_flush: float = 0.0
    completed: bool = False
    flush_count: int = 0


@dataclass
class StreamResult:
    """What a finished (or interrupted) stream produced."""

    text: str
    interrupted: bool = False
    used_tools: bool = True
    tool_tasks: List["asyncio.Task[ToolInvocation]"] = field(default_factory=list)
    dropped_calls: int = 0
