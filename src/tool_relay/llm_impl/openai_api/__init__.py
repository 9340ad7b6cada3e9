"""Expose the OpenAI stream source and tool registry."""

from .registry import OpenAIToolRegistry
from .stream import OpenAIChatStream

__all__ = ["OpenAIChatStream", "OpenAIToolRegistry"]
