"""Streaming model output."""

from .models import ChatStreamSource, StreamEvent, StreamResult, StreamSession
from .consumer import StreamingTokenConsumer, INTERRUPTED_MARKER, DEFAULT_FLUSH_INTERVAL

__all__ = [
    "ChatStreamSource",
    "StreamEvent",
    "StreamResult",
    "StreamSession",
    "StreamingTokenConsumer",
    "INTERRUPTED_MARKER",
    "DEFAULT_FLUSH_INTERVAL",
]
