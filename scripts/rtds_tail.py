#!/usr/bin/env python3
"""
Real-time data tail client.

Connects to the real-time data service, subscribes to one or more topics and
prints every message. Reconnects automatically.

Usage examples:
  python scripts/rtds_tail.py
  python scripts/rtds_tail.py --subscribe activity:trades --subscribe comments:* --duration 60
  python scripts/rtds_tail.py --host ws://127.0.0.1:8765 --ping-interval 1000 --no-reconnect
"""

import asyncio
import argparse
import json
import os
import sys
from typing import List, Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.schemas import ConnectionStatus, Message, Subscription, SubscriptionMessage  # noqa: E402
from realtime import RealTimeDataClient  # noqa: E402


def parse_subscriptions(entries: List[str], filters: Optional[str]) -> SubscriptionMessage:
    subscriptions = []
    for entry in entries:
        topic, _, kind = entry.partition(":")
        subscriptions.append(Subscription(topic=topic, type=kind or "*", filters=filters))
    return SubscriptionMessage(subscriptions=subscriptions)


async def tail(
    host: Optional[str],
    subscription: SubscriptionMessage,
    ping_interval: Optional[int],
    auto_reconnect: bool,
    duration: Optional[int],
) -> None:
    """
    Print messages until the duration elapses (or forever).
    """
    client: Optional[RealTimeDataClient] = None

    def on_connect() -> None:
        print(f"[Info] Connected: {client.host}")
        client.subscribe(subscription)

    def on_status_change(status: ConnectionStatus) -> None:
        print(f"[Status] {status}")

    def on_message(message: Message) -> None:
        print(f"[{message.topic}/{message.type}] {json.dumps(message.payload)}")

    client = RealTimeDataClient(
        on_connect=on_connect,
        on_message=on_message,
        on_status_change=on_status_change,
        host=host,
        ping_interval=ping_interval,
        auto_reconnect=auto_reconnect,
    )

    async with client:
        if duration:
            await asyncio.sleep(duration)
            print("[Info] Duration reached; stopping.")
        else:
            await client.wait_closed()


async def main() -> None:
    parser = argparse.ArgumentParser(description="Tail real-time data topics")
    parser.add_argument("--host", default=None, help="WebSocket endpoint (default: RTDS_HOST setting)")
    parser.add_argument(
        "--subscribe",
        action="append",
        default=None,
        help="topic:type to subscribe to, repeatable (default: activity:trades)",
    )
    parser.add_argument("--filters", default=None, help="Filter expression applied to every subscription")
    parser.add_argument("--ping-interval", type=int, default=None, help="Heartbeat interval in ms")
    parser.add_argument("--no-reconnect", action="store_true", help="Do not reconnect after a failure")
    parser.add_argument("--duration", type=int, default=0, help="Seconds to run (0 = run indefinitely)")
    args = parser.parse_args()

    subscription = parse_subscriptions(args.subscribe or ["activity:trades"], args.filters)
    duration = args.duration if args.duration and args.duration > 0 else None

    await tail(args.host, subscription, args.ping_interval, not args.no_reconnect, duration)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[Info] Interrupted. Bye.")
        sys.exit(0)
