import asyncio
import json
from typing import Any, Dict

import httpx
import pytest

from conftest import FakeTransport
from tool_relay.relay_core import (
    CancellationToken,
    HttpJsonRpcTransport,
    NetworkError,
    OperationCancelledError,
    RemoteError,
    ToolExecutor,
    normalize_output,
)

MCP_URL = "http://localhost:7844/mcp"


def make_transport(handler: Any) -> HttpJsonRpcTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpJsonRpcTransport(MCP_URL, client=client)


def rpc_result(request: httpx.Request, result: Any) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def test_normalize_output_joins_parts() -> None:
    content = [{"type": "text", "text": "line one"}, "line two", {"type": "image", "mimeType": "image/png"}]

    assert normalize_output(content) == 'line one\nline two\n{"type": "image", "mimeType": "image/png"}'


def test_normalize_output_keeps_strings_and_pretty_prints_objects() -> None:
    assert normalize_output("Task deleted") == "Task deleted"
    assert normalize_output({"count": 2}) == '{\n  "count": 2\n}'
    assert normalize_output([]) == ""


@pytest.mark.asyncio
async def test_tools_call_envelope_and_text_content() -> None:
    seen: Dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.update(body)
        return rpc_result(request, {"content": [{"type": "text", "text": "Task deleted"}]})

    async with make_transport(handler) as transport:
        output = await ToolExecutor(transport).execute("tasky_delete_task", {"id": "t1"})

    assert output == "Task deleted"
    assert seen["jsonrpc"] == "2.0"
    assert seen["method"] == "tools/call"
    assert seen["params"] == {"name": "tasky_delete_task", "arguments": {"id": "t1"}}
    assert isinstance(seen["id"], int)


@pytest.mark.asyncio
async def test_result_without_content_is_pretty_printed() -> None:
    transport = make_transport(lambda request: rpc_result(request, {"count": 3}))

    output = await ToolExecutor(transport).execute("tasky_list_tasks", {})

    assert output == '{\n  "count": 3\n}'


@pytest.mark.asyncio
async def test_plain_text_body_is_returned_verbatim() -> None:
    transport = make_transport(lambda request: httpx.Response(200, text="all good"))

    assert await ToolExecutor(transport).execute("tasky_list_tasks", {}) == "all good"


@pytest.mark.asyncio
async def test_unreachable_endpoint_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        await ToolExecutor(make_transport(handler)).execute("tasky_list_tasks", {})


@pytest.mark.asyncio
async def test_http_error_status_raises_remote_error() -> None:
    transport = make_transport(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(RemoteError) as exc_info:
        await ToolExecutor(transport).execute("tasky_list_tasks", {})
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_json_rpc_error_member_raises_remote_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32602, "message": "Unknown tool"}}
        )

    with pytest.raises(RemoteError) as exc_info:
        await ToolExecutor(make_transport(handler)).execute("nope", {})
    assert exc_info.value.code == -32602
    assert "Unknown tool" in str(exc_info.value)


@pytest.mark.asyncio
async def test_tool_error_result_raises_remote_error() -> None:
    transport = make_transport(
        lambda request: rpc_result(request, {"isError": True, "content": [{"type": "text", "text": "Task not found"}]})
    )

    with pytest.raises(RemoteError, match="Task not found"):
        await ToolExecutor(transport).execute("tasky_delete_task", {"id": "missing"})


@pytest.mark.asyncio
async def test_list_tools_returns_named_tools() -> None:
    transport = make_transport(
        lambda request: rpc_result(
            request, {"tools": [{"name": "tasky_list_tasks", "inputSchema": {"type": "object"}}, {"description": "x"}]}
        )
    )

    tools = await transport.list_tools()

    assert [t["name"] for t in tools] == ["tasky_list_tasks"]


@pytest.mark.asyncio
async def test_cancellation_aborts_in_flight_call() -> None:
    transport = FakeTransport(delay=10)
    token = CancellationToken()
    task = asyncio.create_task(ToolExecutor(transport).execute("tasky_list_tasks", {}, token))
    await asyncio.sleep(0.01)

    token.cancel()

    with pytest.raises(OperationCancelledError):
        await task
    assert transport.cancelled
