from .models import (
    ToolDefinition,
    ToolCallRequest,
    ToolCallState,
    ToolInvocation,
    ExecutionResult,
    ErrorInfo,
)
from .registry import ToolRegistry
from .schema import SchemaValidator
from .repair import RepairPolicy
from .state_machine import ToolCallEvent, ToolCallStateMachine, transition

__all__ = [
    "ToolDefinition",
    "ToolCallRequest",
    "ToolCallState",
    "ToolInvocation",
    "ExecutionResult",
    "ErrorInfo",
    "ToolRegistry",
    "SchemaValidator",
    "RepairPolicy",
    "ToolCallEvent",
    "ToolCallStateMachine",
    "transition",
]
