"""
Application Runner - Real-Time Activity Stream

Connects to the real-time data service, subscribes to the configured feeds
and fans every message out to the background services:
    - ActivityLogService: appends each payload to ACTIVITY_LOG_PATH
    - CopyTraderService: mirrors TARGET_WALLET's BUY trades (when ENABLE_TRADING)

Subscriptions are re-sent from the on_connect hook, so every reconnect
restores them (the service does not remember subscriptions across sessions).

Usage:
    python start.py
    python -m app.main
"""

import asyncio
import signal
from typing import Optional

from core.config import settings, validate_configuration
from core.logging import logger
from core.schemas import ConnectionStatus, Message, Subscription, SubscriptionMessage
from realtime import RealTimeDataClient
from services.activity_log import ActivityLogService
from services.copy_trader import CopyTraderService
from services.event_bus import bus


def build_subscription_message() -> SubscriptionMessage:
    """Subscription batch described by RTDS_SUBSCRIPTIONS."""
    return SubscriptionMessage(
        subscriptions=[Subscription(topic=topic, type=kind) for topic, kind in settings.subscriptions_list]
    )


def build_client() -> RealTimeDataClient:
    """Create the client with callbacks wired to the event bus."""
    subscription = build_subscription_message()
    client: Optional[RealTimeDataClient] = None

    def on_connect() -> None:
        logger.info("Connected to WebSocket server")
        client.subscribe(subscription)

    def on_status_change(status: ConnectionStatus) -> None:
        logger.info(f"Connection status changed: {status}")

    async def on_message(message: Message) -> None:
        await bus.publish(message.topic, message)

    client = RealTimeDataClient(
        on_connect=on_connect,
        on_message=on_message,
        on_status_change=on_status_change,
    )
    return client


async def main(duration: Optional[float] = None) -> None:
    """
    Run until SIGINT/SIGTERM (or for `duration` seconds), then shut down cleanly.
    """
    logger.info("=== Application Starting ===")
    validate_configuration()

    activity_log = ActivityLogService()
    copy_trader = CopyTraderService()
    await activity_log.start()
    await copy_trader.start()

    client = build_client()
    await client.connect()
    logger.info("=== Started Successfully ===")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; KeyboardInterrupt still ends asyncio.run
            pass

    try:
        if duration is None:
            await stop.wait()
        else:
            try:
                await asyncio.wait_for(stop.wait(), timeout=duration)
            except asyncio.TimeoutError:
                pass
    finally:
        logger.info("=== Shutting Down ===")
        await client.close()
        try:
            await copy_trader.stop()
        except Exception as svc_stop_err:
            logger.error(f"Error stopping CopyTraderService: {svc_stop_err}")
        try:
            await activity_log.stop()
        except Exception as svc_stop_err:
            logger.error(f"Error stopping ActivityLogService: {svc_stop_err}")
        logger.info("=== Shutdown Complete ===")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
