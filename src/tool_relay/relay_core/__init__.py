"""Public exports for the provider-agnostic relay core."""

from .logger import get_logger, setup_logging
from .exceptions import (
    ToolRelayError,
    OperationCancelledError,
    ConfirmationTimeoutError,
    DuplicateRequestError,
    NetworkError,
    RemoteError,
    SchemaError,
    RepairFailedError,
    InvalidTransitionError,
    ToolRegistrationError,
    describe_error,
)
from .config import RelayConfig, DEFAULT_MCP_URL
from .cancellation import CancellationToken
from .events import (
    EventBus,
    TOOL_EVENT_TOPIC,
    CONFIRM_REQUEST_TOPIC,
    CONFIRM_RESPONSE_TOPIC,
    Resolution,
    ConfirmationRequest,
    ConfirmationResponse,
    ToolEvent,
)
from .messages import (
    BaseMessage,
    UserMessage,
    AssistantMessage,
    SystemMessage,
    SessionRecord,
    history_from_records,
)
from .tools import (
    ToolDefinition,
    ToolCallRequest,
    ToolCallState,
    ToolInvocation,
    ExecutionResult,
    ErrorInfo,
    ToolRegistry,
    SchemaValidator,
    RepairPolicy,
    ToolCallEvent,
    ToolCallStateMachine,
    transition,
)
from .confirmation import (
    ConfirmationChannel,
    AutoApproveRule,
    allow_list_policy,
    default_auto_approve,
    marker_policy,
    never_approve,
)
from .execution import ToolExecutor, ToolTransport, HttpJsonRpcTransport, normalize_output
from .session import Snapshot, SnapshotBridge, InMemoryTranscript, TranscriptSink
from .coordinator import ToolCallCoordinator
from .streaming import ChatStreamSource, StreamEvent, StreamResult, StreamingTokenConsumer, INTERRUPTED_MARKER
from .turn import ChatSession, TurnResult

__all__ = [
    "get_logger",
    "setup_logging",
    "ToolRelayError",
    "OperationCancelledError",
    "ConfirmationTimeoutError",
    "DuplicateRequestError",
    "NetworkError",
    "RemoteError",
    "SchemaError",
    "RepairFailedError",
    "InvalidTransitionError",
    "ToolRegistrationError",
    "describe_error",
    "RelayConfig",
    "DEFAULT_MCP_URL",
    "CancellationToken",
    "EventBus",
    "TOOL_EVENT_TOPIC",
    "CONFIRM_REQUEST_TOPIC",
    "CONFIRM_RESPONSE_TOPIC",
    "Resolution",
    "ConfirmationRequest",
    "ConfirmationResponse",
    "ToolEvent",
    "BaseMessage",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "SessionRecord",
    "history_from_records",
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
    "ConfirmationChannel",
    "AutoApproveRule",
    "allow_list_policy",
    "default_auto_approve",
    "marker_policy",
    "never_approve",
    "ToolExecutor",
    "ToolTransport",
    "HttpJsonRpcTransport",
    "normalize_output",
    "Snapshot",
    "SnapshotBridge",
    "InMemoryTranscript",
    "TranscriptSink",
    "ToolCallCoordinator",
    "ChatStreamSource",
    "StreamEvent",
    "StreamResult",
    "StreamingTokenConsumer",
    "INTERRUPTED_MARKER",
    "ChatSession",
    "TurnResult",
]
