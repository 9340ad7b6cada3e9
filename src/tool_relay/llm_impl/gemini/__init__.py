"""Expose the Gemini stream source and tool registry."""

from .registry import GeminiToolRegistry
from .stream import GeminiChatStream

__all__ = ["GeminiChatStream", "GeminiToolRegistry"]
