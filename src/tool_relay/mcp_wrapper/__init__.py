"""MCP client integration."""

from .wrapper import MCPClientWrapper, render_content

__all__ = ["MCPClientWrapper", "render_content"]
