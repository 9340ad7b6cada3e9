"""Turn finalized tool invocations into durable transcript records."""

from __future__ import annotations

import json
from typing import Any, Dict, Literal, Optional, Set

from pydantic import BaseModel, Field

from ..logger import get_logger
from ..messages import SessionRecord
from ..tools.models import ToolCallState, ToolInvocation

logger = get_logger(__name__)


class Snapshot(BaseModel):
    """Replay-safe record of one finalized tool call."""

    kind: Literal["confirm", "result"]
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[str] = None

    def to_record(self, role: str = "assistant") -> SessionRecord:
        content = json.dumps(
            {"kind": self.kind, "name": self.name, "args": self.args, "output": self.output}, default=str
        )
        return SessionRecord(role=role, content=content)


class SnapshotBridge:
    """
    Emits at most one result snapshot per invocation id.

    Only COMPLETE invocations are snapshotted. Confirmations are ephemeral and
    implied by the outcome, and failed or cancelled calls leave no result.
    """

    def __init__(self) -> None:
        self._last_id: Optional[str] = None
        self._seen: Set[str] = set()

    @property
    def last_snapshot_id(self) -> Optional[str]:
        return self._last_id

    def on_invocation_complete(self, invocation: ToolInvocation) -> Optional[Snapshot]:
        if invocation.id == self._last_id or invocation.id in self._seen:
            logger.debug("Invocation '%s' already snapshotted.", invocation.id)
            return None
        if invocation.state is not ToolCallState.COMPLETE:
            return None

        self._last_id = invocation.id
        self._seen.add(invocation.id)
        logger.debug("Snapshotting result of '%s' (id=%s).", invocation.name, invocation.id)
        return Snapshot(kind="result", name=invocation.name, args=dict(invocation.arguments), output=invocation.output)
