"""Bridge MCP server tools into a ToolRegistry and execute them through an MCP client session."""

from contextlib import AsyncExitStack
from types import TracebackType
from typing import Any, Dict, List, Mapping, Optional, Type, cast

from mcp import ClientSession
from mcp.client.stdio import stdio_client, StdioServerParameters
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from mcp.types import Tool as MCPTool, TextContent, ImageContent, EmbeddedResource

from tool_relay.relay_core import (
    NetworkError,
    RemoteError,
    ToolRegistrationError,
    ToolRegistry,
    get_logger,
)

logger = get_logger(__name__)

__all__ = ["MCPClientWrapper", "render_content"]


def render_content(content: List[Any]) -> str:
    """Flattens MCP content blocks into display text, one block per line."""
    output = []
    for c in content:
        if c.type == "text":
            output.append(cast(TextContent, c).text)
        elif c.type == "image":
            output.append(f"[Image: {cast(ImageContent, c).mimeType}]")
        elif c.type == "resource":
            output.append(f"[Resource: {cast(EmbeddedResource, c).resource.uri}]")
        else:
            output.append(f"[Unknown content type: {c.type}]")
    return "\n".join(output)


class MCPClientWrapper:
    """
    Model Context Protocol client used both to discover tools and to run them.

    The wrapper connects over stdio (``command``/``args``) or streamable HTTP
    (``url``). Once entered, :meth:`load_into` registers the server's tools and
    :meth:`call_tool` makes the wrapper usable as the executor's transport.
    """

    def __init__(
        self,
        command: Optional[str] = None,
        args: Optional[list[str]] = None,
        env: Optional[dict[str, str]] = None,
        url: Optional[str] = None,
    ):
        """Initializes the wrapper with the connection parameters of the MCP server.

        Args:
            command: The command starting a stdio server.
            args: List of arguments for the command.
            env: Optional dictionary of environment variables for the server process.
            url: Endpoint of a streamable HTTP server. Used when no command is given.

        Raises:
            ValueError: If neither a command nor a URL is given.
        """
        if not command and not url:
            raise ValueError("Either a server command or a server URL is required.")
        self._server_params = (
            StdioServerParameters(command=command, args=args or [], env=env) if command else None
        )
        self._url = url
        self._session: Optional[ClientSession] = None
        self._exit_stack = AsyncExitStack()

    async def __aenter__(self) -> "MCPClientWrapper":
        """Opens the transport and initializes the session.

        Returns:
            The initialized MCPClientWrapper instance.
        """
        logger.debug("Initializing MCP client session...")
        if self._server_params is not None:
            read, write = await self._exit_stack.enter_async_context(stdio_client(self._server_params))
        else:
            read, write, _ = await self._exit_stack.enter_async_context(streamablehttp_client(cast(str, self._url)))

        self._session = await self._exit_stack.enter_async_context(ClientSession(read, write))

        await self._session.initialize()
        logger.info("MCP client session initialized successfully.")
        return self

    async def __aexit__(
        self, exc_type: Optional[Type[BaseException]], exc_val: Optional[BaseException], exc_tb: Optional[TracebackType]
    ) -> None:
        """Cleanly closes all connections."""
        logger.debug("Closing MCP client session...")
        await self._exit_stack.aclose()
        self._session = None
        logger.info("MCP client session closed.")

    def _require_session(self) -> ClientSession:
        if not self._session:
            raise RuntimeError("MCP Client is not connected. Use 'async with'.")
        return self._session

    async def load_into(self, registry: ToolRegistry) -> List[str]:
        """Loads all tools from the MCP server and registers them in the given registry.

        Tools whose schema cannot be registered are skipped with an error log.

        Args:
            registry: The ToolRegistry to register the tools into.

        Returns:
            The names of the tools that were registered.

        Raises:
            RuntimeError: If the MCP Client is not connected.
        """
        session = self._require_session()

        logger.debug("Fetching tools from MCP server...")
        result = await session.list_tools()
        logger.info("Found %d tools from MCP server.", len(result.tools))

        registered = []
        for tool in result.tools:
            if self._register_single_tool(registry, tool):
                registered.append(tool.name)
        return registered

    @staticmethod
    def _register_single_tool(registry: ToolRegistry, tool: MCPTool) -> bool:
        tool_description = tool.description or f"Tool {tool.name} provided by MCP server."
        try:
            registry.register(tool.name, description=tool_description, parameters=tool.inputSchema)
        except ToolRegistrationError as e:
            logger.error("Error registering MCP Tool '%s': %s", tool.name, e)
            return False
        logger.info("MCP Tool '%s' successfully registered.", tool.name)
        return True

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> str:
        """Runs a tool on the MCP server.

        Args:
            name: Tool name.
            arguments: Validated argument mapping.

        Returns:
            The normalized text of the result's content blocks, or ``"Success"`` when empty.

        Raises:
            RemoteError: If the server rejects the call or reports a tool error.
            NetworkError: If the server cannot be reached.
        """
        session = self._require_session()
        logger.info("Delegating tool '%s' to MCP Server...", name)
        logger.debug("Tool arguments: %s", arguments)

        args: Dict[str, Any] = dict(arguments)
        try:
            mcp_result = await session.call_tool(name, arguments=args)
        except McpError as e:
            raise RemoteError(e.error.message, code=e.error.code) from e
        except OSError as e:
            raise NetworkError(f"MCP server unreachable: {e}") from e

        if not mcp_result.content:
            result_text = "Success"
        else:
            result_text = render_content(list(mcp_result.content))

        if mcp_result.isError:
            raise RemoteError(result_text or f"Tool '{name}' failed.")

        logger.debug(
            "Tool '%s' result: %s", name, result_text[:200] + "..." if len(result_text) > 200 else result_text
        )
        return result_text
