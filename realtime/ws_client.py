"""
Real-Time Data WebSocket Connection Loop

This module owns the websocket session of a RealTimeDataClient. It handles:
- Dialing the endpoint and reconnecting with a fixed backoff
- Application heartbeats ("ping" every ping_interval, "pong" discarded)
- Decoding inbound envelopes and delivering them to the message callback
- Sending subscribe/unsubscribe control frames queued by the client
- Reporting CONNECTED / DISCONNECTED transitions to the status callback

State Machine (one generation):
    DIALING -> SESSION_ACTIVE -> (session ends, reconnect on)  -> DIALING
                              -> (session ends, reconnect off) -> TERMINATED
    DIALING -> (dial fails, reconnect on)  -> DIALING (after backoff)
    DIALING -> (dial fails, reconnect off) -> TERMINATED

An explicit Disconnect always terminates the generation, whatever the
reconnect flag says.

Concurrency:
    Inbound frames, queued commands and the heartbeat deadline are raced with
    asyncio.wait() inside the single loop task, so the websocket is never
    touched by two coroutines at once. Callbacks run on that same task: a
    slow callback delays frame processing and heartbeats for the session.
    Offload heavy work (see services/event_bus.py) when that matters.

Usage:
    loop = ConnectionLoop(host, ping_interval=5.0, reconnect=ReconnectFlag(),
                          on_message=print)
    task = asyncio.create_task(loop.run())
    loop.send(Subscribe(SubscriptionMessage.of("activity", "trades")))
"""

import asyncio
import inspect
from typing import Any, Callable, Optional

import aiohttp
from aiohttp import WSMsgType
from pydantic import ValidationError

from core.logging import get_logger, log_websocket_event
from core.schemas import ConnectionStatus, Message
from realtime.commands import (
    Command,
    CommandChannel,
    Connect,
    Disconnect,
    ReconnectFlag,
    Subscribe,
    Unsubscribe,
)


PING_FRAME = "ping"
PONG_FRAME = "pong"
PAYLOAD_MARKER = "payload"

OnConnectCallback = Callable[[], Any]
OnMessageCallback = Callable[[Message], Any]
OnStatusChangeCallback = Callable[[ConnectionStatus], Any]


async def invoke_callback(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """
    Run a user callback on the current task.

    Plain callables and callables returning an awaitable are both accepted.
    Exceptions raised by the callback are logged and never propagate.
    """
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        get_logger(__name__).error(f"Callback {getattr(callback, '__name__', callback)!r} failed: {e}")


class ConnectionLoop:
    """
    One generation of the real-time data connection.

    Attributes:
        host: WebSocket endpoint
        ping_interval: Seconds between heartbeat probes
        reconnect_delay: Seconds to wait before re-dialing
        logger: Logger instance

    Notes:
        - A fresh CommandChannel is opened for every successful dial and
          closed when that session ends. Commands sent while no session is
          active are dropped, and nothing is replayed after a reconnect.
        - Pass an aiohttp.ClientSession to share one; otherwise the loop
          creates its own and closes it on exit.
    """

    def __init__(
        self,
        host: str,
        ping_interval: float,
        reconnect: ReconnectFlag,
        reconnect_delay: float = 1.0,
        on_connect: Optional[OnConnectCallback] = None,
        on_message: Optional[OnMessageCallback] = None,
        on_status_change: Optional[OnStatusChangeCallback] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.host = host
        self.ping_interval = ping_interval
        self.reconnect_delay = reconnect_delay
        self._reconnect = reconnect
        self._on_connect = on_connect
        self._on_message = on_message
        self._on_status_change = on_status_change
        self._session = session

        self._channel: Optional[CommandChannel] = None
        self._stop_requested = asyncio.Event()

        self.logger = get_logger(__name__)

    # ============================================
    # Command Entry Point
    # ============================================

    @property
    def session_active(self) -> bool:
        """True while a transport session is open and accepting commands."""
        return self._channel is not None and not self._channel.closed

    def send(self, command: Command) -> bool:
        """
        Hand a command to the active session.

        A Disconnect is also recorded on the loop itself, so it takes effect
        even when it arrives mid-dial or during backoff.

        Returns:
            True if a session accepted the command, False if it was dropped
        """
        if isinstance(command, Disconnect):
            self._stop_requested.set()
        channel = self._channel
        if channel is None:
            self.logger.debug(f"Dropping {type(command).__name__}: no active session")
            return False
        return channel.send(command)

    # ============================================
    # Dial / Reconnect Loop
    # ============================================

    async def run(self) -> None:
        """
        Dial, serve sessions and reconnect until told to stop.

        Reconnection Strategy:
            - Constant delay of reconnect_delay seconds between attempts
            - Retries indefinitely while the reconnect flag is set
            - DISCONNECTED is reported once per ended session and once per
              failed dial attempt
        """
        owns_session = self._session is None
        session = self._session or aiohttp.ClientSession()

        try:
            while True:
                try:
                    self.logger.info(f"Connecting to {self.host}")
                    ws = await session.ws_connect(self.host)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    log_websocket_event(self.host, "error", f"Connection failed: {e}")
                    await self._notify_status(ConnectionStatus.DISCONNECTED)
                    if await self._should_reconnect():
                        continue
                    break

                if self._stop_requested.is_set():
                    # Disconnect arrived while dialing
                    await ws.close()
                    await self._notify_status(ConnectionStatus.DISCONNECTED)
                    break

                await self._serve(ws)

                if not await self._should_reconnect():
                    break

        finally:
            self._channel = None
            if owns_session:
                await session.close()
            self.logger.info(f"Connection loop stopped for {self.host}")

    async def _should_reconnect(self) -> bool:
        """Wait out the backoff and decide whether to dial again."""
        if self._stop_requested.is_set() or not self._reconnect.enabled:
            return False

        self.logger.warning(f"Reconnecting to {self.host} in {self.reconnect_delay}s...")
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout=self.reconnect_delay)
            return False
        except asyncio.TimeoutError:
            pass

        return self._reconnect.enabled and not self._stop_requested.is_set()

    async def _notify_status(self, status: ConnectionStatus) -> None:
        await invoke_callback(self._on_status_change, status)

    # ============================================
    # Session
    # ============================================

    async def _serve(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """
        Run one transport session from successful dial to teardown.

        CONNECTED is reported before on_connect runs, and DISCONNECTED is
        reported exactly once when the session ends for any reason.
        """
        channel = CommandChannel()
        self._channel = channel

        try:
            log_websocket_event(self.host, "connected")
            await self._notify_status(ConnectionStatus.CONNECTED)
            await invoke_callback(self._on_connect)

            await self._run_session(ws, channel)

        except asyncio.CancelledError:
            self.logger.info("Connection loop cancelled")
            raise

        except Exception as e:
            log_websocket_event(self.host, "error", str(e))

        finally:
            channel.close()
            self._channel = None
            if not ws.closed:
                await ws.close()
            log_websocket_event(self.host, "disconnected")
            await self._notify_status(ConnectionStatus.DISCONNECTED)

    async def _run_session(self, ws: aiohttp.ClientWebSocketResponse, channel: CommandChannel) -> None:
        """
        Multiplex inbound frames, queued commands and heartbeats.

        Returns when the session must end: Close/error frame, failed
        heartbeat, Disconnect command or closed channel. Transport errors
        raised while receiving propagate to the caller.
        """
        loop = asyncio.get_running_loop()
        next_ping = loop.time()
        receive_task: Optional[asyncio.Future] = None
        command_task: Optional[asyncio.Future] = None

        try:
            while True:
                now = loop.time()
                if now >= next_ping:
                    try:
                        await ws.send_str(PING_FRAME)
                    except Exception as e:
                        self.logger.error(f"Error sending ping: {e}")
                        return
                    # Missed ticks are skipped, not burst
                    next_ping = now + self.ping_interval

                if receive_task is None:
                    receive_task = asyncio.ensure_future(ws.receive())
                if command_task is None:
                    command_task = asyncio.ensure_future(channel.receive())

                done, _ = await asyncio.wait(
                    {receive_task, command_task},
                    timeout=max(0.0, next_ping - loop.time()),
                    return_when=asyncio.FIRST_COMPLETED,
                )

                # Inbound close/error wins over a command completed in the same pass
                if receive_task in done:
                    frame = receive_task.result()
                    receive_task = None
                    if not await self._handle_frame(ws, frame):
                        return

                if command_task in done:
                    command = command_task.result()
                    command_task = None
                    if command is None:
                        self.logger.debug("Command channel closed, ending session")
                        return
                    if isinstance(command, Disconnect):
                        self.logger.info(f"Disconnect requested, closing {self.host}")
                        await ws.close()
                        return
                    await self._handle_command(ws, command)

        finally:
            pending = [t for t in (receive_task, command_task) if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    # ============================================
    # Inbound Frames
    # ============================================

    async def _handle_frame(self, ws: aiohttp.ClientWebSocketResponse, frame: aiohttp.WSMessage) -> bool:
        """
        Process one inbound frame.

        Returns:
            False if the frame ends the session, True otherwise

        Message Types:
            - WSMsgType.TEXT: heartbeat ack (dropped) or envelope candidate
            - WSMsgType.CLOSE/CLOSING/CLOSED: session over
            - WSMsgType.ERROR: transport error, session over
            - anything else: ignored
        """
        if frame.type == WSMsgType.TEXT:
            await self._dispatch_text(frame.data)
            return True

        if frame.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
            self.logger.warning(f"WebSocket closed by server: {frame.data}")
            return False

        if frame.type == WSMsgType.ERROR:
            self.logger.error(f"WebSocket error: {ws.exception() or frame.data}")
            return False

        self.logger.debug(f"Ignoring message type: {frame.type}")
        return True

    async def _dispatch_text(self, text: str) -> None:
        """Decode an envelope and deliver it; anything undecodable is dropped."""
        if text == PONG_FRAME:
            return

        if PAYLOAD_MARKER not in text:
            self.logger.debug(f"Ignoring non-envelope frame: {text[:100]}")
            return

        try:
            message = Message.from_frame(text)
        except ValidationError as e:
            self.logger.debug(f"Dropping undecodable frame: {text[:100]}... ({e.error_count()} errors)")
            return

        await invoke_callback(self._on_message, message)

    # ============================================
    # Outbound Commands
    # ============================================

    async def _handle_command(self, ws: aiohttp.ClientWebSocketResponse, command: Command) -> None:
        """Send a control frame; failures are logged and the session continues."""
        if isinstance(command, Subscribe):
            action = command.message.to_subscribe_action()
        elif isinstance(command, Unsubscribe):
            action = command.message.to_unsubscribe_action()
        elif isinstance(command, Connect):
            self.logger.debug("Ignoring Connect command: session already active")
            return
        else:
            self.logger.warning(f"Unknown command: {command!r}")
            return

        try:
            await ws.send_str(action.to_frame())
            topics = ", ".join(f"{s.topic}:{s.type}" for s in action.subscriptions)
            self.logger.info(f"Sent {action.action} for {topics or 'no subscriptions'}")
        except Exception as e:
            self.logger.error(f"Error sending {action.action}: {e}")
