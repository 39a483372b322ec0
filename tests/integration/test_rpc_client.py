"""
Integration tests for JsonRpcClient.

Runs the client against a local aiohttp websocket server speaking a
small subset of the Ethereum JSON-RPC API.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import orjson
import pytest
import pytest_asyncio
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer
from web3 import AsyncWeb3

from dexarb.venues.rpc import JsonRpcClient, NodeProvider, RpcError


class FakeNode:
    """Websocket JSON-RPC endpoint with scripted behavior."""

    def __init__(self) -> None:
        self.subscribe_count = 0
        self.drop_after_first_notification = False
        self.requests: list[dict[str, Any]] = []

    async def handle(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                continue
            data = orjson.loads(msg.data)
            self.requests.append(data)
            await self._respond(ws, data)
            if ws.closed:
                break

        return ws

    async def _respond(self, ws: web.WebSocketResponse, data: dict[str, Any]) -> None:
        method = data["method"]
        reply: dict[str, Any] = {"jsonrpc": "2.0", "id": data["id"]}

        if method == "eth_blockNumber":
            reply["result"] = "0x10"
            await ws.send_str(orjson.dumps(reply).decode())

        elif method == "eth_slow":
            await asyncio.sleep(1.0)

        elif method == "eth_subscribe":
            self.subscribe_count += 1
            sub_id = f"0xsub{self.subscribe_count}"
            reply["result"] = sub_id
            await ws.send_str(orjson.dumps(reply).decode())
            notification = {
                "jsonrpc": "2.0",
                "method": "eth_subscription",
                "params": {"subscription": sub_id, "result": {"n": self.subscribe_count}},
            }
            await ws.send_str(orjson.dumps(notification).decode())
            if self.drop_after_first_notification and self.subscribe_count == 1:
                await ws.close()

        else:
            reply["error"] = {"code": -32601, "message": f"method {method} not found"}
            await ws.send_str(orjson.dumps(reply).decode())


@pytest_asyncio.fixture
async def node() -> AsyncIterator[tuple[FakeNode, str]]:
    fake = FakeNode()
    app = web.Application()
    app.router.add_get("/ws", fake.handle)

    server = TestServer(app)
    await server.start_server()
    try:
        yield fake, str(server.make_url("/ws"))
    finally:
        await server.close()


@pytest_asyncio.fixture
async def client(node: tuple[FakeNode, str]) -> AsyncIterator[JsonRpcClient]:
    _, url = node
    rpc = JsonRpcClient(url, request_timeout=0.5)
    try:
        yield rpc
    finally:
        await rpc.close()


class TestJsonRpcClient:
    """Integration tests for JsonRpcClient."""

    @pytest.mark.asyncio
    async def test_call(self, client: JsonRpcClient, node: tuple[FakeNode, str]) -> None:
        fake, _ = node

        assert await client.call("eth_blockNumber") == "0x10"
        assert client.is_connected
        assert fake.requests[0]["jsonrpc"] == "2.0"
        assert fake.requests[0]["params"] == []

    @pytest.mark.asyncio
    async def test_concurrent_calls(self, client: JsonRpcClient) -> None:
        results = await asyncio.gather(*(client.call("eth_blockNumber") for _ in range(10)))

        assert results == ["0x10"] * 10

    @pytest.mark.asyncio
    async def test_error_response(self, client: JsonRpcClient) -> None:
        with pytest.raises(RpcError) as exc_info:
            await client.call("eth_unknown")

        assert exc_info.value.code == -32601

    @pytest.mark.asyncio
    async def test_timeout(self, client: JsonRpcClient) -> None:
        with pytest.raises(RpcError, match="timed out"):
            await client.call("eth_slow")

    @pytest.mark.asyncio
    async def test_subscribe(self, client: JsonRpcClient) -> None:
        stream = client.subscribe(["logs", {}])

        first = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
        await stream.aclose()

        assert first == {"n": 1}

    @pytest.mark.asyncio
    async def test_resubscribes_after_disconnect(
        self, client: JsonRpcClient, node: tuple[FakeNode, str]
    ) -> None:
        fake, _ = node
        fake.drop_after_first_notification = True
        stream = client.subscribe(["logs", {}])

        first = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
        second = await asyncio.wait_for(stream.__anext__(), timeout=2.0)
        await stream.aclose()

        assert first == {"n": 1}
        assert second == {"n": 2}
        assert fake.subscribe_count == 2

    @pytest.mark.asyncio
    async def test_connect_failure(self) -> None:
        rpc = JsonRpcClient("ws://127.0.0.1:1/ws", request_timeout=0.5)
        try:
            with pytest.raises(RpcError):
                await rpc.call("eth_blockNumber")
        finally:
            await rpc.close()


class TestNodeProvider:
    """web3 requests carried by the shared client."""

    @pytest.mark.asyncio
    async def test_web3_request_uses_client(
        self, client: JsonRpcClient, node: tuple[FakeNode, str]
    ) -> None:
        fake, _ = node
        w3 = AsyncWeb3(NodeProvider(client), middleware=[])
        assert not await w3.is_connected()

        assert await w3.eth.block_number == 16

        assert fake.requests[-1]["method"] == "eth_blockNumber"
        assert await w3.is_connected()

    @pytest.mark.asyncio
    async def test_node_error_propagates(self, client: JsonRpcClient) -> None:
        w3 = AsyncWeb3(NodeProvider(client), middleware=[])

        with pytest.raises(RpcError) as exc_info:
            await w3.eth.chain_id

        assert exc_info.value.code == -32601
