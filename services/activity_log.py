"""
Activity Log Service

Consumes real-time messages from the event bus and appends each payload to a
file as one JSON document per line.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

from core.config import settings
from core.logging import get_logger
from core.schemas import Message
from services.event_bus import EventBus, WILDCARD_TOPIC, bus


class ActivityLogService:
    """
    Background service writing message payloads to an append-only file.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        topic: str = WILDCARD_TOPIC,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self.path = Path(path or settings.activity_log_path)
        self.topic = topic
        self._bus = event_bus or bus
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    def write(self, message: Message) -> None:
        """Append the message payload as a single JSON line."""
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(message.payload, separators=(",", ":")))
            f.write("\n")

    async def start(self) -> None:
        if self._task is not None:
            return
        self._queue = await self._bus.subscribe(self.topic)
        self._task = asyncio.create_task(self._consume(self._queue), name="activity_log")
        self._logger.info(f"Writing '{self.topic}' payloads to {self.path}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        await self._bus.unsubscribe(self.topic, self._queue)
        self._task = None
        self._queue = None

    async def _consume(self, queue: asyncio.Queue) -> None:
        while True:
            message = await queue.get()
            try:
                self.write(message)
            except OSError as e:
                self._logger.error(f"Failed to write activity log {self.path}: {e}")
