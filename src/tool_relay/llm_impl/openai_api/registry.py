"""Render registered MCP tools as OpenAI function tools."""

from typing import Any, Dict, List

from tool_relay.relay_core import ToolRegistry


class OpenAIToolRegistry(ToolRegistry):
    """
    A specialized ToolRegistry for OpenAI-compatible chat completion APIs.

    This class extends the base ToolRegistry to provide the ``tools`` payload
    expected by ``chat.completions.create``.
    """

    @property
    def tool_object(self) -> List[Dict[str, Any]] | None:
        """
        Generates a list of tool definitions suitable for the OpenAI API
        based on the registered tools.

        Returns:
            A list of tool dictionaries, or None if no tools are registered.
        """
        if not self.tools:
            return None

        tools_list = []
        for tool in self.tools.values():
            function_def: Dict[str, Any] = {
                "name": tool.name,
                "description": tool.description,
                # Some OpenAI-compatible servers reject functions without a parameters schema
                "parameters": tool.parameters or {"type": "object", "properties": {}},
            }
            tools_list.append({"type": "function", "function": function_def})

        return tools_list
