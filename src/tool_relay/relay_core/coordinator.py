"""Drives tool invocations through confirmation, execution and snapshotting."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Set

from .cancellation import CancellationToken
from .confirmation import AutoApproveRule, ConfirmationChannel
from .events import EventBus, Resolution
from .exceptions import DuplicateRequestError, NetworkError, OperationCancelledError, RemoteError
from .execution import ToolExecutor
from .ids import new_correlation_id
from .logger import get_logger
from .session.snapshot import Snapshot, SnapshotBridge
from .session.transcript import TranscriptSink
from .tools.models import ErrorInfo, ExecutionResult, ToolCallRequest, ToolCallState, ToolInvocation
from .tools.state_machine import ToolCallEvent, ToolCallStateMachine

logger = get_logger(__name__)


class ToolCallCoordinator:
    """
    Runs each tool invocation to a terminal state.

    Invocations run concurrently with no global lock. The live set keyed by id
    enforces one lifecycle per id, and the executing set one outstanding
    execution per id. Once terminal, an invocation is handed to the snapshot
    bridge and its record (if any) appended to the transcript before it leaves
    the live set.
    """

    def __init__(
        self,
        channel: ConfirmationChannel,
        executor: ToolExecutor,
        bus: Optional[EventBus] = None,
        bridge: Optional[SnapshotBridge] = None,
        transcript: Optional[TranscriptSink] = None,
        auto_approve: Optional[AutoApproveRule] = None,
    ) -> None:
        self._channel = channel
        self._executor = executor
        self._bus = bus
        self._bridge = bridge or SnapshotBridge()
        self._transcript = transcript
        self._auto_approve = auto_approve
        self._live: Dict[str, ToolCallStateMachine] = {}
        self._executing: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self.snapshots: List[Snapshot] = []

    @property
    def live_ids(self) -> frozenset:
        return frozenset(self._live)

    def submit(self, call: ToolCallRequest, token: Optional[CancellationToken] = None) -> "asyncio.Task[ToolInvocation]":
        """Start an invocation for ``call`` in the background and return its task."""
        invocation = ToolInvocation(
            id=call.call_id or new_correlation_id(),
            name=call.name,
            arguments=dict(call.arguments or {}),
        )
        task = asyncio.create_task(self.run(invocation, token), name=f"tool:{invocation.name}:{invocation.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, invocation: ToolInvocation, token: Optional[CancellationToken] = None) -> ToolInvocation:
        """Run ``invocation`` to a terminal state.

        Raises:
            DuplicateRequestError: If an invocation with the same id is already live.
        """
        if invocation.id in self._live:
            raise DuplicateRequestError(f"Invocation '{invocation.id}' is already in progress.")

        machine = ToolCallStateMachine(invocation, self._bus)
        self._live[invocation.id] = machine
        try:
            await self._drive(machine, token)
            self._finalize(machine)
        finally:
            self._live.pop(invocation.id, None)
        return invocation

    async def _drive(self, machine: ToolCallStateMachine, token: Optional[CancellationToken]) -> None:
        inv = machine.invocation

        if token is not None and token.cancelled:
            machine.apply(ToolCallEvent.CANCEL)
            return

        if self._channel.is_auto_approved(inv.name, inv.arguments, self._auto_approve):
            machine.apply(ToolCallEvent.AUTO_APPROVE)
        else:
            machine.apply(ToolCallEvent.REQUEST_CONFIRMATION)
            try:
                resolution = await self._channel.negotiate(
                    inv.id, inv.name, inv.arguments, auto_approve=self._auto_approve, token=token
                )
            except OperationCancelledError:
                machine.apply(ToolCallEvent.CANCEL)
                return
            except DuplicateRequestError as exc:
                machine.apply(ToolCallEvent.CANCEL, error=ErrorInfo(kind=exc.kind, message=str(exc)))
                return

            if resolution is Resolution.ACCEPTED:
                machine.apply(ToolCallEvent.ACCEPT)
            elif resolution is Resolution.TIMEOUT:
                machine.apply(ToolCallEvent.TIMEOUT)
                return
            else:
                machine.apply(ToolCallEvent.REJECT)
                return

        try:
            result = await self._execute(inv, token)
        except OperationCancelledError:
            machine.apply(ToolCallEvent.CANCEL)
            return
        except Exception as exc:
            logger.error("Unexpected failure executing '%s' (id=%s).", inv.name, inv.id, exc_info=True)
            machine.apply(ToolCallEvent.FAIL, error=ErrorInfo(kind="internal", message=str(exc)))
            raise

        if result.ok:
            machine.apply(ToolCallEvent.SUCCEED, output=result.output)
        else:
            machine.apply(ToolCallEvent.FAIL, error=result.error)

    async def _execute(self, inv: ToolInvocation, token: Optional[CancellationToken]) -> ExecutionResult:
        if inv.state is not ToolCallState.EXECUTING:
            raise RuntimeError(f"Invocation '{inv.id}' is not executing.")
        if inv.id in self._executing:
            raise DuplicateRequestError(f"Execution for '{inv.id}' is already outstanding.")

        self._executing.add(inv.id)
        try:
            logger.info("Executing tool '%s' (id=%s)...", inv.name, inv.id)
            output = await self._executor.execute(inv.name, inv.arguments, token)
            logger.info("Tool '%s' executed successfully.", inv.name)
            return ExecutionResult(invocation_id=inv.id, output=output)
        except (NetworkError, RemoteError) as exc:
            logger.warning("Tool '%s' failed: %s (%s)", inv.name, exc, exc.kind)
            return ExecutionResult(invocation_id=inv.id, error=ErrorInfo(kind=exc.kind, message=f"MCP error: {exc}"))
        finally:
            self._executing.discard(inv.id)

    def _finalize(self, machine: ToolCallStateMachine) -> None:
        snapshot = self._bridge.on_invocation_complete(machine.invocation)
        if snapshot is None:
            return
        self.snapshots.append(snapshot)
        if self._transcript is not None:
            self._transcript.append(snapshot.to_record())

    async def wait_all(self) -> List[ToolInvocation]:
        """Wait for every invocation submitted so far."""
        tasks = list(self._tasks)
        if not tasks:
            return []
        results = await asyncio.gather(*tasks, return_exceptions=True)
        return [r for r in results if isinstance(r, ToolInvocation)]
