"""Tool definitions and the per-invocation records tracked by the relay."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ToolDefinition(BaseModel):
    """
    Represents a remote tool the model may call.

    Attributes:
        name: The unique name of the tool.
        description: A brief description of what the tool does.
        parameters: JSON schema of the tool's arguments.
    """

    name: str
    description: str
    parameters: Optional[Dict[str, Any]] = None

    @property
    def required_fields(self) -> List[str]:
        if not self.parameters:
            return []
        required = self.parameters.get("required") or []
        return [str(field) for field in required]


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool call as emitted by the model, before validation.

    ``malformed`` is set by stream sources when the provider itself reported the
    emission as broken.
    """

    name: str
    arguments: Any
    call_id: Optional[str] = None
    malformed: bool = False


class ToolCallState(str, Enum):
    PENDING = "pending"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ToolCallState.COMPLETE, ToolCallState.ERROR, ToolCallState.CANCELLED)


class ErrorInfo(BaseModel):
    """Categorized failure of an invocation."""

    kind: str
    message: str


class ToolInvocation(BaseModel):
    """
    One tool call moving through the confirmation and execution lifecycle.

    Attributes:
        id: Correlation id.
        name: Tool name.
        arguments: Validated argument mapping.
        state: Current lifecycle state.
        created_at: When the model emitted the call.
        output: Display string once COMPLETE.
        error: Failure details once ERROR or CANCELLED.
    """

    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    state: ToolCallState = ToolCallState.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    output: Optional[str] = None
    error: Optional[ErrorInfo] = None


class ExecutionResult(BaseModel):
    """Outcome of one executor call for an invocation that reached EXECUTING."""

    invocation_id: str
    output: Optional[str] = None
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None
