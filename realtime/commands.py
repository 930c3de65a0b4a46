"""
Connection Commands

Everything the public client API asks of a running connection travels
through this module:

- Command variants (Connect, Disconnect, Subscribe, Unsubscribe)
- CommandChannel: unbounded, ordered, multi-producer / single-consumer queue
  feeding one transport session
- ReconnectFlag: the reconnect switch shared by the client and every
  connection generation

Usage:
    channel = CommandChannel()
    channel.send(Subscribe(SubscriptionMessage.of("activity", "trades")))

    command = await channel.receive()   # None once the channel is closed
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

from core.logging import get_logger
from core.schemas import SubscriptionMessage


# ============================================
# Command Variants
# ============================================

@dataclass(frozen=True)
class Connect:
    """Connection request. Accepted by the loop and ignored (it is already dialing)."""


@dataclass(frozen=True)
class Disconnect:
    """Close the session and stop the connection loop without reconnecting."""


@dataclass(frozen=True)
class Subscribe:
    """Send a subscribe control frame for the given batch."""

    message: SubscriptionMessage


@dataclass(frozen=True)
class Unsubscribe:
    """Send an unsubscribe control frame for the given batch."""

    message: SubscriptionMessage


Command = Union[Connect, Disconnect, Subscribe, Unsubscribe]


# ============================================
# Command Channel
# ============================================

_CLOSED = object()


class CommandChannel:
    """
    Unbounded command queue between the client API and one transport session.

    - send() never blocks and never raises; after close() it drops the command
      and returns False.
    - receive() yields commands in send order and returns None once the
      channel is closed and drained.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._logger = get_logger(__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, command: Command) -> bool:
        """
        Enqueue a command.

        Returns:
            True if queued, False if the channel is closed (command dropped)
        """
        if self._closed:
            self._logger.debug(f"Dropping {type(command).__name__}: channel closed")
            return False
        self._queue.put_nowait(command)
        return True

    async def receive(self) -> Optional[Command]:
        """Wait for the next command; None means the channel was closed."""
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        """Close the channel. Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        # Wake a receiver blocked on an empty queue
        self._queue.put_nowait(_CLOSED)


# ============================================
# Shared Reconnect Flag
# ============================================

class ReconnectFlag:
    """
    Reconnect switch shared by a client and all of its connection generations.

    Writes are serialized through an asyncio.Lock. Reads happen on the event
    loop thread and never observe a partial write, so they take no lock.
    Scoped to one client instance, never process-wide.
    """

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def set(self, enabled: bool) -> None:
        async with self._lock:
            self._enabled = enabled
