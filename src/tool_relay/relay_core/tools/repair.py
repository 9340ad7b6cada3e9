"""Validation and one-shot repair of tool calls emitted by the model."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Tuple

from ..exceptions import RepairFailedError
from ..logger import get_logger
from .models import ToolCallRequest
from .registry import ToolRegistry

logger = get_logger(__name__)

_ARGUMENT_KEYS = ("args", "arguments", "input", "parameters")


class RepairPolicy:
    """
    Gatekeeper between the stream and the state machine.

    Calls to unknown tools are dropped. Calls whose arguments are not a mapping
    or lack a required field get exactly one coercion attempt. A call the
    provider flagged as malformed that survives both checks is dropped too.
    Dropping never raises: the model may retry the call in a later step.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    def review(self, call: ToolCallRequest) -> Optional[ToolCallRequest]:
        """Return the call to submit, or None to drop it."""
        try:
            return self._review(call)
        except RepairFailedError as exc:
            logger.warning("Dropping tool call '%s': %s", call.name, exc)
            return None

    def _review(self, call: ToolCallRequest) -> ToolCallRequest:
        if call.name not in self._registry:
            raise RepairFailedError(f"Tool '{call.name}' is not recognized.")

        problem = self._shape_problem(call.name, call.arguments)
        if problem is not None:
            logger.info("Tool call '%s' has malformed arguments (%s); attempting coercion.", call.name, problem)
            repaired = self._coerce(call)
            logger.info("Tool call '%s' repaired.", repaired.name)
            return repaired

        if call.malformed:
            raise RepairFailedError("Provider reported the call as malformed.")

        return call

    def _shape_problem(self, name: str, arguments: Any) -> Optional[str]:
        if not isinstance(arguments, Mapping):
            return f"arguments are {type(arguments).__name__}, not an object"
        missing = [field for field in self._registry.required_fields(name) if field not in arguments]
        if missing:
            return f"missing required field(s): {', '.join(missing)}"
        return None

    def _coerce(self, call: ToolCallRequest) -> ToolCallRequest:
        name, arguments = self._extract(call.name, call.arguments)

        if name not in self._registry:
            raise RepairFailedError(f"Coerced tool name '{name}' is not recognized.")
        problem = self._shape_problem(name, arguments)
        if problem is not None:
            raise RepairFailedError(f"Coercion did not help: {problem}.")

        return ToolCallRequest(name=name, arguments=arguments, call_id=call.call_id)

    @staticmethod
    def _extract(name: str, raw: Any) -> Tuple[str, Dict[str, Any]]:
        """Re-extract a (name, args) pair from an encoded string or an already structured payload."""
        payload = raw
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload) if payload else {}
            except (json.JSONDecodeError, ValueError) as exc:
                raise RepairFailedError(f"Arguments are not valid JSON: {exc}") from exc
            # Double-encoded arguments
            if isinstance(payload, str):
                try:
                    payload = json.loads(payload)
                except (json.JSONDecodeError, ValueError) as exc:
                    raise RepairFailedError(f"Arguments are not valid JSON: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise RepairFailedError(f"Arguments decode to {type(payload).__name__}, not an object.")

        # Envelope form: {"name": "...", "args": {...}}
        inner_name = payload.get("name")
        if isinstance(inner_name, str):
            for key in _ARGUMENT_KEYS:
                if key in payload:
                    inner = payload[key]
                    if isinstance(inner, str):
                        _, inner = RepairPolicy._extract(inner_name, inner)
                    if inner is None:
                        inner = {}
                    if isinstance(inner, Mapping):
                        return inner_name, dict(inner)
                    raise RepairFailedError(f"Envelope '{key}' is {type(inner).__name__}, not an object.")

        return name, dict(payload)
