import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from logcascade.clients.rpc import RPC
from logcascade.core.errors import RPCError
from logcascade.core.models import CallOptions

URL = "https://rpc.example.org"
NO_WAIT = CallOptions(timeout_s=1.0, retry_count=2, retry_delay_s=0.0)


def _rpc(handler: Callable[[httpx.Request], httpx.Response]) -> RPC:
    return RPC(URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _ok(request: httpx.Request, result: Any) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.mark.asyncio
async def test_request_posts_json_rpc_payload() -> None:
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return _ok(request, [])

    async with _rpc(handler) as rpc:
        result = await rpc.request({"method": "eth_getLogs", "params": [{"fromBlock": "0x1"}]}, NO_WAIT)

    assert result == []
    assert seen[0]["jsonrpc"] == "2.0"
    assert seen[0]["method"] == "eth_getLogs"
    assert seen[0]["params"] == [{"fromBlock": "0x1"}]


@pytest.mark.asyncio
async def test_request_retries_rate_limit_and_server_errors() -> None:
    statuses = iter([429, 503])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses, 200)
        if status != 200:
            return httpx.Response(status, headers={"Retry-After": "0"})
        return _ok(request, "0x10")

    async with _rpc(handler) as rpc:
        assert await rpc.request({"method": "eth_blockNumber"}, NO_WAIT) == "0x10"


@pytest.mark.asyncio
async def test_request_gives_up_after_retry_count() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503)

    async with _rpc(handler) as rpc:
        with pytest.raises(httpx.HTTPStatusError):
            await rpc.request({"method": "eth_blockNumber"}, NO_WAIT)

    assert calls == NO_WAIT.retry_count + 1


@pytest.mark.asyncio
async def test_request_retries_transport_errors() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return _ok(request, "0x1")

    async with _rpc(handler) as rpc:
        assert await rpc.request({"method": "eth_chainId"}, NO_WAIT) == "0x1"
    assert calls == 2


@pytest.mark.asyncio
async def test_json_rpc_error_is_not_retried() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "query returned more than 10000 results"}},
        )

    async with _rpc(handler) as rpc:
        with pytest.raises(RPCError) as exc_info:
            await rpc.request({"method": "eth_getLogs", "params": [{}]}, NO_WAIT)

    assert exc_info.value.code == -32005
    assert calls == 1


@pytest.mark.asyncio
async def test_latest_and_finalized_block() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        method = json.loads(request.content)["method"]
        if method == "eth_blockNumber":
            return _ok(request, "0x64")
        return _ok(request, {"number": "0x5a", "hash": "0x" + "00" * 32})

    async with _rpc(handler) as rpc:
        assert await rpc.latest_block() == 100
        assert await rpc.finalized_block() == 90


@pytest.mark.asyncio
async def test_finalized_falls_back_to_latest() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        method = json.loads(request.content)["method"]
        if method == "eth_blockNumber":
            return _ok(request, "0x64")
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32602, "message": "invalid block tag"}},
        )

    async with _rpc(handler) as rpc:
        assert await rpc.finalized_block() == 100
