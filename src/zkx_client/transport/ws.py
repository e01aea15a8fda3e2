"""
WebSocket JSON-RPC transport for a ZKX node.

Provides an async JSON-RPC 2.0 client over a single WebSocket: requests are
matched to responses by id, subscription notifications are routed to one
queue per subscription id, and connecting retries with exponential backoff
and jitter.
"""

import asyncio
import itertools
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed

from ..runtime.errors import NetworkError, RequestTimeout, RpcError

logger = logging.getLogger(__name__)

Params = Optional[Union[List[Any], Dict[str, Any]]]


class WebSocketError(NetworkError):
    """Base WebSocket error."""
    pass


class ReconnectExceeded(WebSocketError):
    """Maximum reconnection attempts exceeded."""
    pass


@dataclass
class WebSocketConfig:
    """Configuration for WebSocket client."""
    url: str
    headers: Optional[Dict[str, str]] = None
    timeout: float = 30.0  # Per-request timeout
    open_timeout: float = 10.0
    ping_interval: float = 20.0
    ping_timeout: float = 20.0
    max_retries: int = 5
    backoff_base: float = 1.0
    backoff_factor: float = 2.0
    backoff_max: float = 60.0
    backoff_jitter: float = 0.1
    max_queue_size: int = 1000
    max_early_subscriptions: int = 64  # unknown subscription ids buffered at once


class WebSocketRpcClient:
    """
    Async JSON-RPC client over WebSocket.

    Example:
        ```python
        async with WebSocketRpcClient(WebSocketConfig("ws://127.0.0.1:9944")) as ws:
            header = await ws.request("chain_getHeader")
            async for update in ws.subscribe(
                "author_submitAndWatchExtrinsic", [extrinsic_hex],
                unsubscribe_method="author_unwatchExtrinsic",
            ):
                ...
        ```
    """

    def __init__(self, config: WebSocketConfig):
        """
        Initialize WebSocket client.

        Args:
            config: WebSocket configuration
        """
        self.config = config
        self.websocket = None
        self.connected = False
        self.running = False
        self.retry_count = 0

        self._ids = itertools.count(1)
        self._pending: Dict[int, asyncio.Future] = {}
        self._subscriptions: Dict[str, asyncio.Queue] = {}
        # Notifications that arrive before their subscription id is registered
        self._early: Dict[str, List[Any]] = {}
        self._connect_lock = asyncio.Lock()

        self.reader_task = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def _create_connection(self):
        """Create WebSocket connection."""
        return await websockets.connect(
            self.config.url,
            additional_headers=self.config.headers or {},
            open_timeout=self.config.open_timeout,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
            close_timeout=5.0,
        )

    async def connect(self) -> None:
        """
        Connect to the node, retrying with backoff.

        Raises:
            ReconnectExceeded: If every attempt failed
        """
        async with self._connect_lock:
            while not self.connected:
                logger.info(f"Connecting to WebSocket: {self.config.url}")
                try:
                    websocket = await self._create_connection()
                except (OSError, asyncio.TimeoutError, websockets.InvalidHandshake) as e:
                    logger.error(f"Failed to connect to WebSocket: {e}")
                    await self._backoff(e)
                    continue

                self.websocket = websocket
                self.connected = True
                self.running = True
                self.retry_count = 0
                self.reader_task = asyncio.create_task(self._reader_loop(websocket))
                logger.info("WebSocket connected successfully")

    async def disconnect(self) -> None:
        """Disconnect from WebSocket server."""
        logger.info("Disconnecting WebSocket")

        self.running = False
        self.connected = False

        if self.reader_task:
            self.reader_task.cancel()
            try:
                await self.reader_task
            except asyncio.CancelledError:
                pass
            self.reader_task = None

        if self.websocket:
            try:
                await self.websocket.close()
            except ConnectionClosed as e:
                logger.debug(f"Error closing WebSocket: {e}")
            finally:
                self.websocket = None

        self._early.clear()
        self._fail_all(WebSocketError("WebSocket disconnected"))

    async def request(self, method: str, params: Params = None,
                      timeout: Optional[float] = None) -> Any:
        """
        Send a JSON-RPC request and wait for its response.

        Args:
            method: RPC method name
            params: Positional list or named dict
            timeout: Seconds to wait; config.timeout when None

        Returns:
            The response's result

        Raises:
            RpcError: If the node answered with an error
            RequestTimeout: If no response arrived in time
            WebSocketError: If the connection dropped
        """
        if not self.connected:
            await self.connect()

        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        message = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params if params is not None else [],
        }
        logger.debug(f"RPC -> {method} (id={request_id})")

        websocket = self.websocket
        try:
            await websocket.send(json.dumps(message))
            return await asyncio.wait_for(future, timeout or self.config.timeout)
        except asyncio.TimeoutError:
            raise RequestTimeout(f"No response to {method} within {timeout or self.config.timeout}s")
        except ConnectionClosed as e:
            await self._connection_lost(websocket, e)
            raise WebSocketError(f"Connection closed while calling {method}", cause=e)
        finally:
            self._pending.pop(request_id, None)

    async def subscribe(self, method: str, params: Params = None,
                        unsubscribe_method: Optional[str] = None) -> AsyncIterator[Any]:
        """
        Subscribe and yield each notification's result.

        Args:
            method: Subscription RPC method
            params: Subscription parameters
            unsubscribe_method: Method called with the subscription id when
                the consumer stops iterating

        Yields:
            Notification results in arrival order

        Raises:
            WebSocketError: If the connection dropped mid-subscription
        """
        subscription_id = await self.request(method, params)
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.config.max_queue_size)
        self._subscriptions[subscription_id] = queue
        for result in self._early.pop(subscription_id, []):
            self._enqueue(queue, result)
        logger.info(f"Subscribed via {method}: {subscription_id}")

        try:
            while True:
                item = await queue.get()
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self._subscriptions.pop(subscription_id, None)
            if unsubscribe_method and self.connected:
                try:
                    await self.request(unsubscribe_method, [subscription_id])
                except (RpcError, RequestTimeout, WebSocketError) as e:
                    logger.debug(f"Unsubscribe {subscription_id} failed: {e}")

    async def _reader_loop(self, websocket) -> None:
        """Read one connection until it closes or is replaced."""
        logger.debug("Starting WebSocket reader loop")

        try:
            while self.running and self.websocket is websocket:
                try:
                    message = await websocket.recv()
                except ConnectionClosed as e:
                    logger.info(f"WebSocket connection closed: {e}")
                    await self._connection_lost(websocket, e)
                    break

                self._handle_message(message)
        except asyncio.CancelledError:
            logger.debug("Reader loop cancelled")
            raise
        finally:
            logger.debug("Reader loop exiting")

    def _handle_message(self, message: Union[str, bytes]) -> None:
        """Route a response to its request or a notification to its subscription."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON message: {e}")
            return

        if "id" in data and data["id"] is not None:
            future = self._pending.get(data["id"])
            if future is None or future.done():
                logger.debug(f"Response for unknown request id {data['id']}")
                return
            if "error" in data:
                error = data["error"] or {}
                logger.error(f"WebSocket RPC error: {error}")
                future.set_exception(RpcError(
                    error.get("message", "Unknown error"),
                    rpc_code=error.get("code"),
                    data=error.get("data"),
                ))
            else:
                future.set_result(data.get("result"))
            return

        params = data.get("params")
        if "method" in data and isinstance(params, dict) and "subscription" in params:
            subscription_id = params["subscription"]
            queue = self._subscriptions.get(subscription_id)
            if queue is None:
                self._hold_early(subscription_id, params.get("result"))
            else:
                self._enqueue(queue, params.get("result"))
            return

        logger.debug(f"Unknown message format: {data}")

    def _hold_early(self, subscription_id: str, result: Any) -> None:
        """Buffer a notification whose subscription id is not registered yet."""
        if subscription_id not in self._early and len(self._early) >= self.config.max_early_subscriptions:
            dropped = next(iter(self._early))
            del self._early[dropped]
            logger.warning(f"Dropped early notifications for unknown subscription {dropped}")

        held = self._early.setdefault(subscription_id, [])
        if len(held) >= self.config.max_queue_size:
            held.pop(0)
        held.append(result)

    def _enqueue(self, queue: asyncio.Queue, item: Any) -> None:
        """Enqueue a notification, dropping the oldest when full."""
        try:
            queue.put_nowait(item)
        except asyncio.QueueFull:
            queue.get_nowait()
            queue.put_nowait(item)
            logger.warning("Dropped oldest notification due to queue full")

    def _fail_all(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
        for queue in self._subscriptions.values():
            self._enqueue(queue, error)

    async def _connection_lost(self, websocket, error: Exception) -> None:
        """Fail everything in flight; the next request reconnects."""
        if websocket is not self.websocket:
            logger.debug(f"Ignoring close of a replaced connection: {error}")
            return

        self.connected = False
        self.websocket = None
        self._early.clear()

        reader = self.reader_task
        self.reader_task = None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()

        self._fail_all(WebSocketError("WebSocket connection lost", cause=error))

    async def _backoff(self, error: Exception) -> None:
        """Sleep before the next connection attempt."""
        if self.retry_count >= self.config.max_retries:
            logger.error(f"Max retries ({self.config.max_retries}) exceeded")
            self.running = False
            raise ReconnectExceeded(
                f"Failed to connect after {self.config.max_retries} attempts", cause=error
            )

        backoff = min(
            self.config.backoff_base * (self.config.backoff_factor ** self.retry_count),
            self.config.backoff_max
        )
        jitter = backoff * self.config.backoff_jitter * (random.random() - 0.5)
        backoff_with_jitter = max(0, backoff + jitter)

        self.retry_count += 1
        logger.info(f"Reconnecting in {backoff_with_jitter:.1f}s (attempt {self.retry_count}/{self.config.max_retries})")

        await asyncio.sleep(backoff_with_jitter)
