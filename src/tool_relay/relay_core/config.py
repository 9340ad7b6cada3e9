"""Runtime configuration for the relay."""

import os
from typing import List, Literal, Optional, Tuple

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_MCP_URL = "http://localhost:7844/mcp"
DEFAULT_SYSTEM_PROMPT = (
    "You are Tasky, a helpful assistant. Use the available tools to manage the user's tasks and "
    "reminders. Ask before deleting anything."
)


class RelayConfig(BaseModel):
    """
    Settings shared by the relay components.

    Attributes:
        mcp_url: Endpoint receiving JSON-RPC ``tools/call`` requests.
        request_timeout: Seconds before an HTTP call to the endpoint is abandoned.
        confirmation_timeout: Seconds a confirmation request waits for an answer.
        flush_interval: Seconds between partial-text flushes while streaming.
        auto_approve_markers: Name fragments marking read-only tools.
        auto_approve_tools: Explicit allow-list. When set it replaces the marker heuristic.
        skip_flag: Argument key that, when truthy, skips confirmation.
        provider: Model provider used for streaming.
        model: Model identifier.
        api_key: Provider API key.
        base_url: Optional OpenAI-compatible base URL (LM Studio, OpenRouter, ...).
        temperature: Sampling temperature.
        max_tokens: Maximum tokens generated per turn.
        system_prompt: System instruction prepended to every turn.
    """

    mcp_url: str = DEFAULT_MCP_URL
    request_timeout: float = 60.0
    confirmation_timeout: float = 30.0
    flush_interval: float = 0.06
    auto_approve_markers: Tuple[str, ...] = ("list", "get")
    auto_approve_tools: Optional[List[str]] = None
    skip_flag: str = "skip_confirmation"
    provider: Literal["openai", "gemini"] = "gemini"
    model: str = "gemini-2.5-flash"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 1.0
    max_tokens: int = Field(default=4096, gt=0)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "RelayConfig":
        """Build a configuration from environment variables.

        A ``.env`` file is loaded first (without overriding variables already set).
        Recognized variables: ``TOOL_RELAY_MCP_URL``, ``TOOL_RELAY_PROVIDER``,
        ``TOOL_RELAY_MODEL``, ``TOOL_RELAY_CONFIRM_TIMEOUT``, ``TOOL_RELAY_AUTO_APPROVE``
        (comma separated allow-list), ``OPENAI_API_KEY``, ``OPENAI_BASE_URL``,
        ``GOOGLE_API_KEY`` / ``GEMINI_API_KEY``.

        Args:
            env_file: Explicit path of the ``.env`` file to load.

        Returns:
            The resulting configuration.
        """
        path = env_file or find_dotenv(usecwd=True)
        if path:
            logger.debug("Loading environment from %s", path)
            load_dotenv(path)

        values: dict = {}
        if os.getenv("TOOL_RELAY_MCP_URL"):
            values["mcp_url"] = os.environ["TOOL_RELAY_MCP_URL"]
        if os.getenv("TOOL_RELAY_CONFIRM_TIMEOUT"):
            values["confirmation_timeout"] = float(os.environ["TOOL_RELAY_CONFIRM_TIMEOUT"])
        if os.getenv("TOOL_RELAY_AUTO_APPROVE"):
            values["auto_approve_tools"] = [
                name.strip() for name in os.environ["TOOL_RELAY_AUTO_APPROVE"].split(",") if name.strip()
            ]

        provider = os.getenv("TOOL_RELAY_PROVIDER", "gemini")
        values["provider"] = provider
        if os.getenv("TOOL_RELAY_MODEL"):
            values["model"] = os.environ["TOOL_RELAY_MODEL"]
        elif provider == "openai":
            values["model"] = "gpt-4o-mini"

        if provider == "openai":
            values["api_key"] = os.getenv("OPENAI_API_KEY")
            values["base_url"] = os.getenv("OPENAI_BASE_URL")
        else:
            values["api_key"] = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")

        return cls(**values)
