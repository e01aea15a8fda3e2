"""
Tests for the WebSocket JSON-RPC transport against an in-process fake socket.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from websockets.exceptions import ConnectionClosed

from zkx_client.runtime.errors import RequestTimeout, RpcError
from zkx_client.transport.ws import (
    ReconnectExceeded,
    WebSocketConfig,
    WebSocketError,
    WebSocketRpcClient,
)

_CLOSE = object()


class FakeSocket:
    """
    Mock WebSocket connection.

    ``handler`` receives each decoded request and returns the replies the
    node sends back.
    """

    def __init__(self, handler=None):
        self.handler = handler
        self.sent = []
        self.incoming = asyncio.Queue()
        self.closed = False
        self.fail_send = False

    async def send(self, message):
        if self.fail_send:
            raise ConnectionClosed(None, None)
        data = json.loads(message)
        self.sent.append(data)
        if self.handler:
            for reply in self.handler(data):
                self.incoming.put_nowait(json.dumps(reply))

    async def recv(self):
        item = await self.incoming.get()
        if item is _CLOSE:
            raise ConnectionClosed(None, None)
        return item

    async def close(self):
        self.closed = True

    def drop(self):
        self.incoming.put_nowait(_CLOSE)


def _config(**overrides):
    values = {"url": "ws://127.0.0.1:9944", "timeout": 1.0, "backoff_base": 0.0}
    values.update(overrides)
    return WebSocketConfig(**values)


def _echo_handler(data):
    if data["method"] == "fail":
        return [{"jsonrpc": "2.0", "id": data["id"],
                 "error": {"code": 1010, "message": "Invalid Transaction", "data": "bad"}}]
    if data["method"] == "silent":
        return []
    return [{"jsonrpc": "2.0", "id": data["id"], "result": {"method": data["method"]}}]


async def _connected(socket, **overrides):
    client = WebSocketRpcClient(_config(**overrides))
    client._create_connection = AsyncMock(return_value=socket)
    await client.connect()
    return client


class TestWebSocketRequests:
    """Request/response matching."""

    @pytest.mark.asyncio
    async def test_request_result(self):
        socket = FakeSocket(_echo_handler)
        client = await _connected(socket)
        try:
            result = await client.request("chain_getHeader")
            assert result == {"method": "chain_getHeader"}
            assert socket.sent[0]["jsonrpc"] == "2.0"
            assert socket.sent[0]["params"] == []
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_concurrent_requests_matched_by_id(self):
        socket = FakeSocket(_echo_handler)
        client = await _connected(socket)
        try:
            first, second = await asyncio.gather(client.request("a"), client.request("b"))
            assert first == {"method": "a"}
            assert second == {"method": "b"}
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_rpc_error(self):
        client = await _connected(FakeSocket(_echo_handler))
        try:
            with pytest.raises(RpcError) as exc_info:
                await client.request("fail")
            assert exc_info.value.rpc_code == 1010
            assert exc_info.value.data == "bad"
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = await _connected(FakeSocket(_echo_handler))
        try:
            with pytest.raises(RequestTimeout):
                await client.request("silent", timeout=0.05)
            assert client._pending == {}
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_connection_drop_fails_pending(self):
        socket = FakeSocket(_echo_handler)
        client = await _connected(socket)
        try:
            pending = asyncio.ensure_future(client.request("silent"))
            await asyncio.sleep(0)
            socket.drop()
            with pytest.raises(WebSocketError):
                await pending
            assert not client.connected
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_context_manager(self):
        socket = FakeSocket(_echo_handler)
        client = WebSocketRpcClient(_config())
        client._create_connection = AsyncMock(return_value=socket)
        async with client:
            assert client.connected
        assert socket.closed
        assert not client.connected


class TestWebSocketSubscriptions:
    """Notification routing."""

    @pytest.mark.asyncio
    async def test_subscription_notifications(self):
        def handler(data):
            if data["method"] == "author_submitAndWatchExtrinsic":
                # Notifications may arrive right behind the subscription id
                return [
                    {"jsonrpc": "2.0", "id": data["id"], "result": "sub-1"},
                    {"jsonrpc": "2.0", "method": "author_extrinsicUpdate",
                     "params": {"subscription": "sub-1", "result": "ready"}},
                    {"jsonrpc": "2.0", "method": "author_extrinsicUpdate",
                     "params": {"subscription": "sub-1", "result": {"inBlock": "0xabc"}}},
                ]
            return [{"jsonrpc": "2.0", "id": data["id"], "result": True}]

        socket = FakeSocket(handler)
        client = await _connected(socket)
        try:
            subscription = client.subscribe(
                "author_submitAndWatchExtrinsic", ["0x00"],
                unsubscribe_method="author_unwatchExtrinsic",
            )
            updates = []
            async for update in subscription:
                updates.append(update)
                if isinstance(update, dict):
                    break
            await subscription.aclose()

            assert updates == ["ready", {"inBlock": "0xabc"}]
            assert socket.sent[-1]["method"] == "author_unwatchExtrinsic"
            assert socket.sent[-1]["params"] == ["sub-1"]
            assert client._subscriptions == {}
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_notifications_for_other_subscriptions_kept_apart(self):
        def handler(data):
            return [
                {"jsonrpc": "2.0", "id": data["id"], "result": "sub-2"},
                {"jsonrpc": "2.0", "method": "chain_newHead",
                 "params": {"subscription": "other", "result": 1}},
                {"jsonrpc": "2.0", "method": "chain_newHead",
                 "params": {"subscription": "sub-2", "result": 2}},
            ]

        client = await _connected(FakeSocket(handler))
        try:
            subscription = client.subscribe("chain_subscribeNewHeads")
            assert await subscription.__anext__() == 2
            await subscription.aclose()
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_drop_ends_subscription(self):
        socket = FakeSocket(lambda data: [{"jsonrpc": "2.0", "id": data["id"], "result": "sub-3"}])
        client = await _connected(socket)
        try:
            updates = client.subscribe("chain_subscribeNewHeads")
            first = asyncio.ensure_future(updates.__anext__())
            await asyncio.sleep(0.01)
            socket.drop()
            with pytest.raises(WebSocketError):
                await first
        finally:
            await client.disconnect()


class TestWebSocketReconnect:
    """Connection retries with backoff."""

    @pytest.mark.asyncio
    async def test_retries_until_connected(self):
        socket = FakeSocket(_echo_handler)
        client = WebSocketRpcClient(_config(max_retries=3))
        client._create_connection = AsyncMock(side_effect=[OSError("refused"), OSError("refused"), socket])

        await client.connect()
        try:
            assert client.connected
            assert client.retry_count == 0
            assert client._create_connection.call_count == 3
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        client = WebSocketRpcClient(_config(max_retries=2))
        client._create_connection = AsyncMock(side_effect=OSError("refused"))

        with pytest.raises(ReconnectExceeded):
            await client.connect()
        assert client._create_connection.call_count == 3

    @pytest.mark.asyncio
    async def test_request_reconnects_after_drop(self):
        first, second = FakeSocket(_echo_handler), FakeSocket(_echo_handler)
        client = WebSocketRpcClient(_config())
        client._create_connection = AsyncMock(side_effect=[first, second])
        await client.connect()
        try:
            first.drop()
            await asyncio.sleep(0.01)
            assert not client.connected

            assert await client.request("system_health") == {"method": "system_health"}
            assert second.sent[0]["method"] == "system_health"
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_send_failure_replaces_reader(self):
        """A failed send retires the old connection's reader before reconnecting."""
        first, second = FakeSocket(_echo_handler), FakeSocket(_echo_handler)
        client = WebSocketRpcClient(_config())
        client._create_connection = AsyncMock(side_effect=[first, second])
        await client.connect()
        try:
            old_reader = client.reader_task
            first.fail_send = True
            with pytest.raises(WebSocketError):
                await client.request("system_health")
            await asyncio.sleep(0.01)

            assert old_reader.done()
            assert client.reader_task is None
            assert not client.connected

            assert await client.request("system_health") == {"method": "system_health"}
            assert client.reader_task is not old_reader
            assert client._create_connection.call_count == 2
        finally:
            await client.disconnect()

    @pytest.mark.asyncio
    async def test_late_close_of_replaced_socket_ignored(self):
        first, second = FakeSocket(_echo_handler), FakeSocket(_echo_handler)
        client = WebSocketRpcClient(_config())
        client._create_connection = AsyncMock(side_effect=[first, second])
        await client.connect()
        try:
            first.drop()
            await asyncio.sleep(0.01)
            await client.connect()

            await client._connection_lost(first, ConnectionClosed(None, None))

            assert client.connected
            assert client.websocket is second
            assert await client.request("system_health") == {"method": "system_health"}
        finally:
            await client.disconnect()


def _notification(subscription, result):
    return json.dumps({"jsonrpc": "2.0", "method": "chain_newHead",
                       "params": {"subscription": subscription, "result": result}})


class TestEarlyNotifications:
    """Buffering of notifications for subscription ids not yet registered."""

    @pytest.mark.asyncio
    async def test_unknown_subscription_ids_capped(self):
        client = WebSocketRpcClient(_config(max_early_subscriptions=2))
        for subscription in ["a", "b", "c"]:
            client._handle_message(_notification(subscription, 1))

        assert list(client._early) == ["b", "c"]

    @pytest.mark.asyncio
    async def test_notifications_per_id_capped(self):
        client = WebSocketRpcClient(_config(max_queue_size=3))
        for result in range(5):
            client._handle_message(_notification("a", result))

        assert client._early == {"a": [2, 3, 4]}

    @pytest.mark.asyncio
    async def test_buffer_cleared_on_drop(self):
        socket = FakeSocket(_echo_handler)
        client = await _connected(socket)
        try:
            socket.incoming.put_nowait(_notification("stale", 1))
            await asyncio.sleep(0.01)
            assert "stale" in client._early

            socket.drop()
            await asyncio.sleep(0.01)
            assert client._early == {}
        finally:
            await client.disconnect()
