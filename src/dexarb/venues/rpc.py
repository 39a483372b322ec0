"""
Async JSON-RPC client for Ethereum nodes.

Single websocket connection shared by calls and subscriptions:
- Request/response matching by id
- eth_subscribe streams with automatic resubscription
- Exponential reconnect backoff
- orjson for fast JSON handling

NodeProvider exposes the same connection to web3, so contract calls and
transactions ride the socket the subscriptions use.
"""

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
import orjson
from web3.providers import AsyncBaseProvider
from web3.types import RPCEndpoint, RPCResponse

from dexarb.config.constants import (
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
    RECONNECT_MULTIPLIER,
    RPC_REQUEST_TIMEOUT,
    WS_HEARTBEAT,
    WS_MAX_MESSAGE_SIZE,
)
from dexarb.core.errors import DexArbError


logger = logging.getLogger(__name__)


class RpcError(DexArbError):
    """Transport failure or JSON-RPC error response."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


_DISCONNECTED = object()


class JsonRpcClient:
    """
    JSON-RPC 2.0 over a websocket.

    Features:
    - Lazy connection on first use
    - Concurrent calls multiplexed over one socket
    - Subscriptions that survive reconnects
    """

    def __init__(
        self,
        url: str,
        request_timeout: float = RPC_REQUEST_TIMEOUT,
    ) -> None:
        """
        Initialize the client.

        Args:
            url: Websocket endpoint (ws:// or wss://).
            request_timeout: Seconds to wait for a call's response.
        """
        self._url = url
        self._request_timeout = request_timeout

        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._connect_lock = asyncio.Lock()

        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._subscriptions: dict[str, asyncio.Queue[Any]] = {}
        self._subscribe_requests: set[int] = set()

    # =========================================================================
    # Connection
    # =========================================================================

    async def connect(self) -> None:
        """Open the websocket if it is not open yet."""
        async with self._connect_lock:
            if self._ws is not None and not self._ws.closed:
                return

            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    json_serialize=lambda x: orjson.dumps(x).decode(),
                )

            try:
                self._ws = await self._session.ws_connect(
                    self._url,
                    heartbeat=WS_HEARTBEAT,
                    max_msg_size=WS_MAX_MESSAGE_SIZE,
                )
            except (aiohttp.ClientError, OSError) as e:
                raise RpcError(f"Cannot connect to {self._url}: {e}") from e

            self._reader = asyncio.create_task(self._read_loop(self._ws))
            logger.info(f"Connected to node {self._url}")

    async def close(self) -> None:
        """Close the connection and the session."""
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None

        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

        self._connection_lost("client closed")

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Route incoming frames to pending calls and subscriptions."""
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        data = orjson.loads(msg.data)
                    except orjson.JSONDecodeError:
                        logger.warning(f"Discarding invalid JSON frame: {msg.data[:200]}")
                        continue
                    self._route(data)
                elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                    break
        finally:
            if self._ws is ws:
                self._ws = None
            self._connection_lost("connection lost")

    def _route(self, data: dict[str, Any]) -> None:
        if data.get("method") == "eth_subscription":
            params = data.get("params") or {}
            queue = self._subscriptions.get(params.get("subscription", ""))
            if queue is not None:
                queue.put_nowait(params.get("result"))
            return

        request_id = data.get("id", -1)
        future = self._pending.pop(request_id, None)
        if future is None or future.done():
            return

        error = data.get("error")
        result = data.get("result")
        if request_id in self._subscribe_requests and not error and isinstance(result, str):
            # Notifications may arrive before the subscriber resumes
            self._subscriptions.setdefault(result, asyncio.Queue())
        if error:
            future.set_exception(RpcError(error.get("message", "RPC error"), error.get("code")))
        else:
            future.set_result(result)

    def _connection_lost(self, reason: str) -> None:
        """Fail in-flight calls and wake subscription readers."""
        for future in self._pending.values():
            if not future.done():
                future.set_exception(RpcError(reason))
        self._pending.clear()

        for queue in self._subscriptions.values():
            queue.put_nowait(_DISCONNECTED)
        self._subscriptions.clear()

    # =========================================================================
    # Calls
    # =========================================================================

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Invoke a JSON-RPC method.

        Args:
            method: RPC method name, e.g. ``eth_call``.
            params: Positional parameters.

        Returns:
            The ``result`` member of the response.

        Raises:
            RpcError: On error response, timeout, or connection failure.
        """
        await self.connect()
        ws = self._ws
        if ws is None:
            raise RpcError("Not connected")

        request_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        if method == "eth_subscribe":
            self._subscribe_requests.add(request_id)

        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []}
        try:
            await ws.send_str(orjson.dumps(payload).decode())
            return await asyncio.wait_for(future, timeout=self._request_timeout)
        except asyncio.TimeoutError as e:
            raise RpcError(f"{method} timed out after {self._request_timeout}s") from e
        except (aiohttp.ClientError, ConnectionResetError) as e:
            raise RpcError(f"{method} failed: {e}") from e
        finally:
            self._pending.pop(request_id, None)
            self._subscribe_requests.discard(request_id)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def subscribe(self, params: list[Any]) -> AsyncIterator[Any]:
        """
        Stream notifications of an ``eth_subscribe`` subscription.

        Resubscribes with exponential backoff when the connection drops.
        Stops when the consuming task is cancelled.

        Args:
            params: ``eth_subscribe`` parameters, e.g. ``["logs", {...}]``.
        """
        delay = MIN_RECONNECT_DELAY

        while True:
            try:
                subscription_id = await self.call("eth_subscribe", params)
            except RpcError as e:
                logger.warning(f"Subscribe failed ({e}), retrying in {delay:.1f}s")
                await asyncio.sleep(delay)
                delay = min(delay * RECONNECT_MULTIPLIER, MAX_RECONNECT_DELAY)
                continue

            delay = MIN_RECONNECT_DELAY
            queue = self._subscriptions.setdefault(subscription_id, asyncio.Queue())
            logger.debug(f"Subscription {subscription_id} active")

            try:
                while True:
                    item = await queue.get()
                    if item is _DISCONNECTED:
                        break
                    yield item
            finally:
                self._subscriptions.pop(subscription_id, None)

            logger.warning(f"Subscription {subscription_id} lost, resubscribing")

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and not self._ws.closed


class NodeProvider(AsyncBaseProvider):
    """
    web3 provider backed by a JsonRpcClient.

    Transport errors surface as RpcError; web3 handles request and
    result formatting.
    """

    def __init__(self, client: JsonRpcClient) -> None:
        super().__init__()
        self._client = client
        self._ids = itertools.count(1)

    async def make_request(self, method: RPCEndpoint, params: Any) -> RPCResponse:
        result = await self._client.call(method, list(params))
        return {"jsonrpc": "2.0", "id": next(self._ids), "result": result}

    async def is_connected(self, show_traceback: bool = False) -> bool:
        return self._client.is_connected

    @property
    def client(self) -> JsonRpcClient:
        return self._client
