"""Collect the provider stream sources and their provider-specific tool registries."""

from typing import Tuple

from google import genai
from openai import AsyncOpenAI

from tool_relay.relay_core import ChatStreamSource, RelayConfig, ToolRegistry
from .gemini import GeminiChatStream, GeminiToolRegistry
from .openai_api import OpenAIChatStream, OpenAIToolRegistry


def create_provider(config: RelayConfig) -> Tuple[ChatStreamSource, ToolRegistry]:
    """
    Builds the stream source and the matching empty tool registry for ``config.provider``.

    Args:
        config: Relay configuration carrying provider, model and credentials.

    Returns:
        A ``(source, registry)`` pair.
    """
    if config.provider == "openai":
        client = AsyncOpenAI(api_key=config.api_key, base_url=config.base_url)
        source: ChatStreamSource = OpenAIChatStream(
            client, config.model, temp=config.temperature, max_tokens=config.max_tokens
        )
        return source, OpenAIToolRegistry()

    aclient = genai.Client(api_key=config.api_key).aio
    source = GeminiChatStream(aclient, config.model, temp=config.temperature, max_tokens=config.max_tokens)
    return source, GeminiToolRegistry()


__all__ = [
    "create_provider",
    "GeminiChatStream",
    "GeminiToolRegistry",
    "OpenAIChatStream",
    "OpenAIToolRegistry",
]
