"""
Real-Time Data Client Package

Auto-reconnecting websocket client for the Polymarket real-time data service.

Modules:
- client.py: RealTimeDataClient, the public facade
- ws_client.py: ConnectionLoop, the websocket session state machine
- commands.py: Command variants, CommandChannel and the shared ReconnectFlag
"""

from core.schemas import (
    ClobApiKeyCreds,
    ConnectionStatus,
    GammaAuth,
    Message,
    Subscription,
    SubscriptionMessage,
)
from realtime.client import RealTimeDataClient, RealTimeDataClientArgs

__all__ = [
    "ClobApiKeyCreds",
    "ConnectionStatus",
    "GammaAuth",
    "Message",
    "RealTimeDataClient",
    "RealTimeDataClientArgs",
    "Subscription",
    "SubscriptionMessage",
]
