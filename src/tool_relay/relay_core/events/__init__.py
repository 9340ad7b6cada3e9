"""Event bus and the payloads exchanged over it."""

from .bus import EventBus
from .models import (
    TOOL_EVENT_TOPIC,
    CONFIRM_REQUEST_TOPIC,
    CONFIRM_RESPONSE_TOPIC,
    Resolution,
    ConfirmationRequest,
    ConfirmationResponse,
    ToolEvent,
)

__all__ = [
    "EventBus",
    "TOOL_EVENT_TOPIC",
    "CONFIRM_REQUEST_TOPIC",
    "CONFIRM_RESPONSE_TOPIC",
    "Resolution",
    "ConfirmationRequest",
    "ConfirmationResponse",
    "ToolEvent",
]
