"""Transports carrying JSON-RPC ``tools/call`` requests to the remote tool endpoint."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx

from ..exceptions import NetworkError, RemoteError
from ..ids import next_request_id
from ..logger import get_logger

logger = get_logger(__name__)


class ToolTransport(Protocol):
    """Performs one remote tool call and returns the raw response content."""

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> Any:
        """Call ``name`` remotely.

        Returns:
            The response content: a string, a list of parts, or a structured payload.

        Raises:
            NetworkError: If the endpoint cannot be reached.
            RemoteError: If the endpoint reports an application error.
        """
        ...


def build_call_envelope(name: str, arguments: Optional[Mapping[str, Any]], request_id: Optional[int] = None) -> Dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id if request_id is not None else next_request_id(),
        "method": "tools/call",
        "params": {"name": name, "arguments": dict(arguments or {})},
    }


class HttpJsonRpcTransport:
    """Posts JSON-RPC 2.0 envelopes to an MCP HTTP endpoint using httpx."""

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ) -> None:
        """
        Args:
            url: The endpoint, e.g. ``http://localhost:7844/mcp``.
            client: Optional pre-configured client. One is created (and owned) otherwise.
            timeout: Request timeout in seconds for an owned client.
        """
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "HttpJsonRpcTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> Any:
        payload = await self._rpc(build_call_envelope(name, arguments))
        result = payload.get("result") if isinstance(payload, dict) else None
        if isinstance(result, dict) and result.get("isError"):
            raise RemoteError(_content_text(result.get("content")) or f"Tool '{name}' reported an error.")
        if isinstance(result, dict) and result.get("content") is not None:
            return result["content"]
        if result is not None:
            return result
        return payload

    async def list_tools(self) -> List[Dict[str, Any]]:
        """Fetch the endpoint's tool catalogue via ``tools/list``."""
        payload = await self._rpc({"jsonrpc": "2.0", "id": next_request_id(), "method": "tools/list", "params": {}})
        result = payload.get("result") if isinstance(payload, dict) else None
        tools = result.get("tools", []) if isinstance(result, dict) else []
        return [tool for tool in tools if isinstance(tool, dict) and tool.get("name")]

    async def _rpc(self, envelope: Dict[str, Any]) -> Any:
        logger.debug("POST %s method=%s id=%s", self.url, envelope["method"], envelope["id"])
        try:
            response = await self._client.post(self.url, json=envelope, headers={"Accept": "application/json"})
        except httpx.TransportError as exc:
            msg = f"MCP endpoint unreachable: {exc}"
            logger.error(msg)
            raise NetworkError(msg) from exc

        if response.is_error:
            raise RemoteError(
                f"MCP call failed ({response.status_code}): {response.text}", status_code=response.status_code
            )

        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError):
            return response.text

        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise RemoteError(message, status_code=response.status_code, code=code)
        return payload


def _content_text(content: Any) -> str:
    if isinstance(content, list):
        return "\n".join(part["text"] for part in content if isinstance(part, dict) and isinstance(part.get("text"), str))
    return content if isinstance(content, str) else ""
