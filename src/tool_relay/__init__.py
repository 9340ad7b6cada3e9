"""Tool Relay - streams model output and relays its tool calls to an MCP server with user confirmation."""

from .relay_core import (
    CancellationToken,
    ChatSession,
    ConfirmationChannel,
    EventBus,
    RelayConfig,
    StreamingTokenConsumer,
    ToolCallCoordinator,
    ToolCallState,
    ToolEvent,
    ToolExecutor,
    ToolInvocation,
    ToolRegistry,
    TurnResult,
    describe_error,
    get_logger,
    setup_logging,
)
from .llm_impl import create_provider, GeminiChatStream, GeminiToolRegistry, OpenAIChatStream, OpenAIToolRegistry
from .mcp_wrapper import MCPClientWrapper
from .relay import ToolRelay, auto_approve_rule

__all__ = [
    "CancellationToken",
    "ChatSession",
    "ConfirmationChannel",
    "EventBus",
    "RelayConfig",
    "StreamingTokenConsumer",
    "ToolCallCoordinator",
    "ToolCallState",
    "ToolEvent",
    "ToolExecutor",
    "ToolInvocation",
    "ToolRegistry",
    "TurnResult",
    "describe_error",
    "get_logger",
    "setup_logging",
    "create_provider",
    "GeminiChatStream",
    "GeminiToolRegistry",
    "OpenAIChatStream",
    "OpenAIToolRegistry",
    "MCPClientWrapper",
    "ToolRelay",
    "auto_approve_rule",
]
