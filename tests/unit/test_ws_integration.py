"""
Integration Tests for Real-Time Data Streaming

These tests run RealTimeDataClient against a local aiohttp websocket server
that behaves like the real-time data service:
- Answers "ping" with "pong"
- Publishes envelopes after a subscribe frame
- Closes the connection to force a reconnect

Run with:
    pytest tests/unit/test_ws_integration.py -v
"""

import asyncio
import json

import pytest
import pytest_asyncio
from aiohttp import WSMsgType, web

from core.schemas import ConnectionStatus, SubscriptionAction, SubscriptionMessage
from realtime import RealTimeDataClient


def envelope(seq):
    return json.dumps({
        "topic": "activity",
        "type": "trades",
        "timestamp": 1704110400000 + seq,
        "payload": {"seq": seq, "side": "BUY"},
        "connection_id": "local-1",
    })


async def wait_until(predicate, timeout=2.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(poll(), timeout=timeout)


# ============================================
# Fixtures
# ============================================

class FakeRTDSServer:
    """Local websocket server recording what clients send"""

    def __init__(self, close_first_connection=False, burst=3):
        self.received = []
        self.connections = 0
        self.close_first_connection = close_first_connection
        self.burst = burst
        self.url = None
        self._runner = None

    async def handler(self, request):
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.connections += 1

        if self.close_first_connection and self.connections == 1:
            await ws.close()
            return ws

        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                continue
            self.received.append(msg.data)
            if msg.data == "ping":
                await ws.send_str("pong")
            elif msg.data.startswith('{"action":"subscribe"'):
                for seq in range(self.burst):
                    await ws.send_str(envelope(seq))
                await ws.send_str("payload without structure")
                await ws.send_str(json.dumps({"event": "subscribed"}))
        return ws

    async def start(self):
        app = web.Application()
        app.router.add_get("/", self.handler)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", 0)
        await site.start()
        host, port = self._runner.addresses[0][:2]
        self.url = f"ws://{host}:{port}/"

    async def stop(self):
        await self._runner.cleanup()

    @property
    def subscribe_frames(self):
        return [SubscriptionAction.from_frame(m) for m in self.received if m.startswith("{")]


@pytest_asyncio.fixture
async def rtds_server():
    server = FakeRTDSServer()
    await server.start()
    yield server
    await server.stop()


@pytest_asyncio.fixture
async def flaky_rtds_server():
    server = FakeRTDSServer(close_first_connection=True)
    await server.start()
    yield server
    await server.stop()


# ============================================
# Tests for End-to-End Streaming
# ============================================

class TestEndToEnd:
    """Tests against a real websocket server"""

    @pytest.mark.asyncio
    async def test_subscribe_and_receive(self, rtds_server):
        """Verify heartbeat, subscribe frame and envelope delivery over a real socket"""
        statuses, messages = [], []
        client = None
        subscription = SubscriptionMessage.of("activity", "trades")

        def on_connect():
            client.subscribe(subscription)

        client = RealTimeDataClient(
            on_connect=on_connect,
            on_message=messages.append,
            on_status_change=statuses.append,
            host=rtds_server.url,
            ping_interval=5000,
        )

        await client.connect()
        await wait_until(lambda: len(messages) == 3)
        await client.close()

        assert [m.payload["seq"] for m in messages] == [0, 1, 2]
        assert all(m.connection_id == "local-1" for m in messages)
        assert "ping" in rtds_server.received
        assert rtds_server.subscribe_frames[0].subscriptions == subscription.subscriptions
        assert statuses == [
            ConnectionStatus.CONNECTING,
            ConnectionStatus.CONNECTED,
            ConnectionStatus.DISCONNECTED,
        ]
        assert rtds_server.connections == 1

    @pytest.mark.asyncio
    async def test_server_close_triggers_reconnect(self, flaky_rtds_server):
        """Verify a server-side close is followed by a redial and resubscribe from on_connect"""
        statuses, messages = [], []
        client = None

        def on_connect():
            client.subscribe(SubscriptionMessage.of("activity", "trades"))

        client = RealTimeDataClient(
            on_connect=on_connect,
            on_message=messages.append,
            on_status_change=statuses.append,
            host=flaky_rtds_server.url,
            reconnect_delay=0.05,
        )

        await client.connect()
        await wait_until(lambda: len(messages) == 3)
        await client.close()

        assert flaky_rtds_server.connections == 2
        assert statuses == [
            ConnectionStatus.CONNECTING,
            ConnectionStatus.CONNECTED,
            ConnectionStatus.DISCONNECTED,
            ConnectionStatus.CONNECTED,
            ConnectionStatus.DISCONNECTED,
        ]

    @pytest.mark.asyncio
    async def test_unreachable_host_without_reconnect(self):
        """Verify a refused dial ends the loop after one DISCONNECTED when reconnect is off"""
        statuses = []
        client = RealTimeDataClient(
            on_status_change=statuses.append,
            host="ws://127.0.0.1:9/",
            auto_reconnect=False,
        )

        await client.connect()
        await asyncio.wait_for(client.wait_closed(), timeout=5.0)

        assert statuses == [ConnectionStatus.CONNECTING, ConnectionStatus.DISCONNECTED]
