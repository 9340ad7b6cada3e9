"""Remote tool execution with response normalization."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from ..cancellation import CancellationToken
from ..logger import get_logger
from .transport import ToolTransport

logger = get_logger(__name__)


def normalize_output(content: Any) -> str:
    """Flatten a tool response into one display string.

    Lists are newline-joined: text parts and plain strings verbatim, anything
    else JSON-encoded. Strings are returned unchanged and any other payload is
    pretty-printed JSON.
    """
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
            elif isinstance(part, str):
                parts.append(part)
            else:
                parts.append(json.dumps(part, default=str))
        return "\n".join(parts)

    if isinstance(content, str):
        return content

    return json.dumps(content, indent=2, default=str)


class ToolExecutor:
    """Performs remote tool calls through a transport.

    The executor has no side effects beyond the call itself; the caller
    records the result.
    """

    def __init__(self, transport: ToolTransport) -> None:
        self._transport = transport

    async def execute(
        self, name: str, args: Optional[Mapping[str, Any]], token: Optional[CancellationToken] = None
    ) -> str:
        """Run ``name`` remotely and return its normalized output.

        Args:
            name: Tool name.
            args: Tool arguments.
            token: Turn cancellation token. Firing it aborts the in-flight call.

        Returns:
            The display string of the tool's output.

        Raises:
            NetworkError: On transport failure.
            RemoteError: When the endpoint reports an application error.
            OperationCancelledError: When the token fires before completion.
        """
        arguments = dict(args or {})
        logger.info("Delegating tool '%s' to the MCP endpoint...", name)
        logger.debug("Tool arguments: %s", arguments)

        call = self._transport.call_tool(name, arguments)
        content = await token.guard(call) if token is not None else await call

        output = normalize_output(content)
        logger.debug("Tool '%s' result: %s", name, output[:200] + "..." if len(output) > 200 else output)
        return output
