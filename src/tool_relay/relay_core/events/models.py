"""Payload models published on the relay event bus."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

TOOL_EVENT_TOPIC = "tool"
CONFIRM_REQUEST_TOPIC = "tool:confirm"
CONFIRM_RESPONSE_TOPIC = "tool:confirm:response"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Resolution(str, Enum):
    """How a confirmation request was settled."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class ConfirmationRequest(BaseModel):
    """A request for the user to approve one tool invocation.

    Attributes:
        id: Correlation id of the invocation.
        name: Tool name.
        args: Snapshot of the arguments the tool would be called with.
        resolution: Set once the request is settled.
        issued_at: When the request was published.
    """

    id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    resolution: Optional[Resolution] = None
    issued_at: datetime = Field(default_factory=_utcnow)


class ConfirmationResponse(BaseModel):
    """The user's answer to a :class:`ConfirmationRequest`, correlated by id."""

    id: str
    accepted: bool


class ToolEvent(BaseModel):
    """Lifecycle notification emitted once per phase of an invocation."""

    id: str
    phase: Literal["start", "done", "error"]
    name: str
    args: Optional[Dict[str, Any]] = None
    output: Optional[str] = None
    error: Optional[str] = None
