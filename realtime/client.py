"""
Real-Time Data Client

The public object applications hold. It owns the callbacks and the shared
reconnect flag, spawns the ConnectionLoop as a background task and talks to
it only through commands.

Usage:
    client = RealTimeDataClient(
        on_message=lambda m: print(m.topic, m.payload),
        on_status_change=lambda s: print(f"status: {s}"),
    )
    await client.connect()
    client.subscribe(SubscriptionMessage.of("activity", "trades"))
    ...
    await client.disconnect()

Or as an async context manager:
    async with RealTimeDataClient(on_message=handle) as client:
        client.subscribe(SubscriptionMessage.of("activity", "trades"))
        await asyncio.sleep(60)
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp

from core.config import settings
from core.logging import get_logger
from core.schemas import ConnectionStatus, SubscriptionMessage
from realtime.commands import Command, Disconnect, ReconnectFlag, Subscribe, Unsubscribe
from realtime.ws_client import (
    ConnectionLoop,
    OnConnectCallback,
    OnMessageCallback,
    OnStatusChangeCallback,
    invoke_callback,
)


@dataclass
class RealTimeDataClientArgs:
    """
    Construction arguments for RealTimeDataClient.

    Unset values fall back to the application settings
    (RTDS_HOST, RTDS_PING_INTERVAL_MS, RTDS_AUTO_RECONNECT, RTDS_RECONNECT_DELAY).
    """

    on_connect: Optional[OnConnectCallback] = None
    on_message: Optional[OnMessageCallback] = None
    on_status_change: Optional[OnStatusChangeCallback] = None
    host: Optional[str] = None
    ping_interval: Optional[int] = None
    auto_reconnect: Optional[bool] = None
    reconnect_delay: Optional[float] = None


class RealTimeDataClient:
    """
    Auto-reconnecting client for the real-time data websocket.

    Attributes:
        host: WebSocket endpoint
        ping_interval: Heartbeat interval in milliseconds
        reconnect_delay: Seconds between reconnection attempts
        logger: Logger instance

    Notes:
        - Construction does no I/O
        - No public method blocks or raises on steady-state failures; they
          surface only as DISCONNECTED status events and log output
        - One connection generation at a time: connect() while a generation
          is alive is ignored
        - After disconnect() the client is finished; connect() is ignored
        - subscribe()/unsubscribe() are best effort: with no active session
          the request is dropped, never queued for a later session
    """

    def __init__(
        self,
        on_connect: Optional[OnConnectCallback] = None,
        on_message: Optional[OnMessageCallback] = None,
        on_status_change: Optional[OnStatusChangeCallback] = None,
        host: Optional[str] = None,
        ping_interval: Optional[int] = None,
        auto_reconnect: Optional[bool] = None,
        reconnect_delay: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the client.

        Args:
            on_connect: Called after each successful dial (after CONNECTED)
            on_message: Called with every decoded Message
            on_status_change: Called with each ConnectionStatus transition
            host: WebSocket endpoint (default: settings.rtds_host)
            ping_interval: Heartbeat interval in ms (default: settings.rtds_ping_interval_ms)
            auto_reconnect: Reconnect after failures (default: settings.rtds_auto_reconnect)
            reconnect_delay: Backoff in seconds (default: settings.rtds_reconnect_delay)
            session: Optional shared aiohttp session

        Raises:
            ValueError: If ping_interval is not positive or reconnect_delay is negative
        """
        self.host = host or settings.rtds_host
        self.ping_interval = ping_interval if ping_interval is not None else settings.rtds_ping_interval_ms
        self.reconnect_delay = (
            reconnect_delay if reconnect_delay is not None else settings.rtds_reconnect_delay
        )
        if self.ping_interval <= 0:
            raise ValueError(f"Invalid ping_interval: {self.ping_interval}ms. Must be positive")
        if self.reconnect_delay < 0:
            raise ValueError(f"Invalid reconnect_delay: {self.reconnect_delay}s. Must not be negative")

        self._reconnect = ReconnectFlag(
            auto_reconnect if auto_reconnect is not None else settings.rtds_auto_reconnect
        )
        self._on_connect = on_connect
        self._on_message = on_message
        self._on_status_change = on_status_change
        self._session = session

        self._connection: Optional[ConnectionLoop] = None
        self._task: Optional[asyncio.Task] = None
        self._disconnected = False

        self.logger = get_logger(__name__)

    @classmethod
    def from_args(
        cls,
        args: RealTimeDataClientArgs,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> "RealTimeDataClient":
        """Build a client from a RealTimeDataClientArgs bundle."""
        return cls(
            on_connect=args.on_connect,
            on_message=args.on_message,
            on_status_change=args.on_status_change,
            host=args.host,
            ping_interval=args.ping_interval,
            auto_reconnect=args.auto_reconnect,
            reconnect_delay=args.reconnect_delay,
            session=session,
        )

    # ============================================
    # Context Manager
    # ============================================

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # State
    # ============================================

    @property
    def auto_reconnect(self) -> bool:
        """Current value of the shared reconnect flag."""
        return self._reconnect.enabled

    @property
    def is_running(self) -> bool:
        """True while a connection generation is alive (dialing, connected or backing off)."""
        return self._task is not None and not self._task.done()

    # ============================================
    # Public API
    # ============================================

    async def connect(self) -> None:
        """
        Start the connection loop in the background.

        Returns as soon as the loop is scheduled, not when the session is up.
        Reports CONNECTING to the status callback.
        """
        if self._disconnected:
            self.logger.warning("connect() ignored: client was disconnected")
            return

        if self.is_running:
            self.logger.warning("connect() ignored: a connection is already active")
            return

        await invoke_callback(self._on_status_change, ConnectionStatus.CONNECTING)

        self._connection = ConnectionLoop(
            host=self.host,
            ping_interval=self.ping_interval / 1000.0,
            reconnect=self._reconnect,
            reconnect_delay=self.reconnect_delay,
            on_connect=self._on_connect,
            on_message=self._on_message,
            on_status_change=self._on_status_change,
            session=self._session,
        )
        self._task = asyncio.create_task(self._connection.run(), name="rtds_connection")

    async def disconnect(self) -> None:
        """
        Disable reconnection and ask the active session to close.

        Fire-and-forget: returns once the request is issued. Use
        wait_closed() to wait for the loop to finish.
        """
        self._disconnected = True
        await self._reconnect.set(False)
        self._send(Disconnect())

    def subscribe(self, message: SubscriptionMessage) -> None:
        """Best-effort subscribe on the active session."""
        self._send(Subscribe(message))

    def unsubscribe(self, message: SubscriptionMessage) -> None:
        """Best-effort unsubscribe on the active session."""
        self._send(Unsubscribe(message))

    async def wait_closed(self) -> None:
        """Wait until the connection loop has terminated."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def close(self) -> None:
        """Disconnect and wait for the connection loop to terminate."""
        await self.disconnect()
        await self.wait_closed()

    # ============================================
    # Helpers
    # ============================================

    def _send(self, command: Command) -> None:
        if self._connection is None:
            self.logger.debug(f"Dropping {type(command).__name__}: not connected")
            return
        self._connection.send(command)
