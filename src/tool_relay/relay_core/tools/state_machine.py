"""Explicit lifecycle of a single tool invocation."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Set, Tuple

from ..events import TOOL_EVENT_TOPIC, EventBus, ToolEvent
from ..exceptions import ConfirmationTimeoutError, InvalidTransitionError, OperationCancelledError
from ..logger import get_logger
from .models import ErrorInfo, ToolCallState, ToolInvocation

logger = get_logger(__name__)


class ToolCallEvent(str, Enum):
    REQUEST_CONFIRMATION = "request_confirmation"
    AUTO_APPROVE = "auto_approve"
    ACCEPT = "accept"
    REJECT = "reject"
    TIMEOUT = "timeout"
    SUCCEED = "succeed"
    FAIL = "fail"
    CANCEL = "cancel"


_S = ToolCallState
_E = ToolCallEvent

TRANSITIONS: Dict[Tuple[ToolCallState, ToolCallEvent], ToolCallState] = {
    (_S.PENDING, _E.REQUEST_CONFIRMATION): _S.CONFIRMING,
    (_S.PENDING, _E.AUTO_APPROVE): _S.EXECUTING,
    (_S.PENDING, _E.CANCEL): _S.CANCELLED,
    (_S.CONFIRMING, _E.ACCEPT): _S.EXECUTING,
    (_S.CONFIRMING, _E.REJECT): _S.CANCELLED,
    (_S.CONFIRMING, _E.TIMEOUT): _S.CANCELLED,
    (_S.CONFIRMING, _E.CANCEL): _S.CANCELLED,
    (_S.EXECUTING, _E.SUCCEED): _S.COMPLETE,
    (_S.EXECUTING, _E.FAIL): _S.ERROR,
    (_S.EXECUTING, _E.CANCEL): _S.CANCELLED,
}

_REASONS = {
    _E.REJECT: ("rejected", "User cancelled"),
    _E.TIMEOUT: (ConfirmationTimeoutError.kind, "Confirmation timed out"),
    _E.CANCEL: (OperationCancelledError.kind, "Tool call was cancelled"),
}


def transition(state: ToolCallState, event: ToolCallEvent) -> ToolCallState:
    """Return the state reached from ``state`` on ``event``.

    Raises:
        InvalidTransitionError: If ``state`` does not accept ``event``.
    """
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(f"Cannot apply '{event.value}' in state '{state.value}'.") from None


class ToolCallStateMachine:
    """
    Holds one invocation and publishes its lifecycle notifications.

    Phases map onto transitions: ``start`` when the call leaves PENDING,
    ``done`` on COMPLETE and ``error`` on ERROR or CANCELLED. Each phase is
    published at most once per id, and ``start`` always precedes the other two.
    """

    def __init__(self, invocation: ToolInvocation, bus: Optional[EventBus] = None) -> None:
        self.invocation = invocation
        self._bus = bus
        self._emitted: Set[str] = set()

    @property
    def state(self) -> ToolCallState:
        return self.invocation.state

    def apply(
        self,
        event: ToolCallEvent,
        output: Optional[str] = None,
        error: Optional[ErrorInfo] = None,
    ) -> ToolCallState:
        """Move the invocation along ``event`` and publish the matching phase.

        Args:
            event: What happened.
            output: Tool output, for SUCCEED.
            error: Failure details, for FAIL. Derived from the event for REJECT, TIMEOUT and CANCEL.

        Returns:
            The new state.
        """
        previous = self.invocation.state
        new_state = transition(previous, event)
        self.invocation.state = new_state
        logger.debug("Invocation '%s': %s -> %s (%s)", self.invocation.id, previous.value, new_state.value, event.value)

        if new_state is ToolCallState.COMPLETE:
            self.invocation.output = output
        elif new_state is ToolCallState.ERROR:
            self.invocation.error = error or ErrorInfo(kind="unknown", message="Tool call failed")
        elif new_state is ToolCallState.CANCELLED:
            kind, message = _REASONS.get(event, ("cancelled", "Cancelled"))
            self.invocation.error = error or ErrorInfo(kind=kind, message=message)

        if previous is ToolCallState.PENDING:
            self._emit("start")
        if new_state is ToolCallState.COMPLETE:
            self._emit("done")
        elif new_state in (ToolCallState.ERROR, ToolCallState.CANCELLED):
            self._emit("error")

        return new_state

    def _emit(self, phase: str) -> None:
        if phase in self._emitted:
            return
        self._emitted.add(phase)
        if self._bus is None:
            return

        inv = self.invocation
        event = ToolEvent(
            id=inv.id,
            phase=phase,  # type: ignore[arg-type]
            name=inv.name,
            args=dict(inv.arguments),
            output=inv.output if phase == "done" else None,
            error=inv.error.message if phase == "error" and inv.error else None,
        )
        self._bus.publish(TOOL_EVENT_TOPIC, event)
