"""Tool-related data models."""

from .models import (
    ToolDefinition,
    ToolCallRequest,
    ToolCallState,
    ToolInvocation,
    ExecutionResult,
    ErrorInfo,
)

__all__ = [
    "ToolDefinition",
    "ToolCallRequest",
    "ToolCallState",
    "ToolInvocation",
    "ExecutionResult",
    "ErrorInfo",
]
