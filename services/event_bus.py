"""
Simple Async Pub/Sub Event Bus

This module provides a lightweight publish/subscribe utility built on top of
asyncio queues. The real-time data client publishes every decoded Message
under its topic; background services subscribe and consume independently,
so slow consumers never stall the websocket connection loop.
"""

import asyncio
from typing import Any, DefaultDict, Set
from collections import defaultdict

from core.logging import get_logger


WILDCARD_TOPIC = "*"


class EventBus:
    """
    Async event bus with topic-based pub/sub.

    - Each subscriber gets its own asyncio.Queue and will not block publishers.
    - Subscribers of "*" receive events from every topic.
    - Unsubscribing is important to avoid queue leaks when consumers stop.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._topics: DefaultDict[str, Set[asyncio.Queue]] = defaultdict(set)
        self._max_queue_size = max_queue_size
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    async def subscribe(self, topic: str) -> asyncio.Queue:
        """
        Subscribe to a topic ("*" for all topics). Returns an asyncio.Queue for receiving events.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        async with self._lock:
            self._topics[topic].add(queue)
        self._logger.debug(f"Subscriber added to topic '{topic}'. total={len(self._topics[topic])}")
        return queue

    async def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        """
        Unsubscribe a queue from a topic.
        """
        async with self._lock:
            if queue in self._topics.get(topic, set()):
                self._topics[topic].remove(queue)
                # Drain to allow GC
                while not queue.empty():
                    queue.get_nowait()
        self._logger.debug(f"Subscriber removed from topic '{topic}'. total={len(self._topics[topic])}")

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, set()))

    def publish_nowait(self, topic: str, event: Any) -> None:
        """
        Publish an event to a topic without awaiting. Drops events for full subscriber queues.
        """
        subscribers = list(self._topics.get(topic, set()))
        if topic != WILDCARD_TOPIC:
            subscribers += list(self._topics.get(WILDCARD_TOPIC, set()))
        if not subscribers:
            return

        for q in subscribers:
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                # Drop event to avoid backpressure blocking
                self._logger.warning(f"Dropping event for topic '{topic}' due to full queue")

    async def publish(self, topic: str, event: Any) -> None:
        """
        Publish an event to a topic. Drops events if subscriber queue is full.
        """
        self.publish_nowait(topic, event)


# Singleton event bus for the application
bus = EventBus()
