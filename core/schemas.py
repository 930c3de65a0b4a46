"""
Real-Time Data Schemas

This module defines the Pydantic models for everything that crosses the
real-time data websocket.

Key Principle:
    The client never interprets message payloads. It only validates the
    envelope (topic, type, timestamp, connection_id) and hands the opaque
    payload to the caller untouched.

Models:
    - ConnectionStatus: Connection status events pushed to the status callback
    - ClobApiKeyCreds / GammaAuth: Optional per-topic credential blocks
    - Subscription: One (topic, type, filters) subscription
    - SubscriptionMessage: Ordered batch of subscriptions sent as one frame
    - SubscriptionAction: Wire form of a SubscriptionMessage ("subscribe"/"unsubscribe")
    - Message: Decoded inbound envelope

Wire Examples:
    Outbound:
        {"action":"subscribe","subscriptions":[{"topic":"activity","type":"trades"}]}
    Inbound:
        {"topic":"activity","type":"trades","timestamp":1704110400000,
         "payload":{...},"connection_id":"abc="}
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict

from core.utils.time import to_utc_datetime


# ============================================
# Connection Status
# ============================================

class ConnectionStatus(str, Enum):
    """
    Connection status values reported through the status-change callback.

    Status is an event stream, not queryable state: the client pushes each
    transition to the callback and keeps no record of it.
    """

    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"

    def __str__(self) -> str:
        return self.value


# ============================================
# Credential Blocks
# ============================================

class ClobApiKeyCreds(BaseModel):
    """CLOB API credentials attached to authenticated subscriptions."""

    model_config = ConfigDict(frozen=True)

    key: str
    secret: str
    passphrase: str


class GammaAuth(BaseModel):
    """Gamma credentials (wallet address) attached to authenticated subscriptions."""

    model_config = ConfigDict(frozen=True)

    address: str


# ============================================
# Subscriptions (outbound control frames)
# ============================================

class Subscription(BaseModel):
    """
    A single subscription request.

    Attributes:
        topic: Feed topic (e.g., "activity", "comments", "crypto_prices")
        type: Message type within the topic (e.g., "trades", "*")
        filters: Optional server-side filter expression (opaque string)
        clob_auth: Optional CLOB credentials for user-scoped topics
        gamma_auth: Optional Gamma credentials for user-scoped topics

    Notes:
        - Immutable once constructed
        - Identity is the full tuple; overlapping subscriptions are never merged
        - Optional fields are omitted from the wire when unset
    """

    model_config = ConfigDict(frozen=True)

    topic: str = Field(
        ...,
        description="Feed topic",
        examples=["activity", "comments", "crypto_prices"]
    )

    type: str = Field(
        ...,
        description="Message type within the topic",
        examples=["trades", "orders_matched", "*"]
    )

    filters: Optional[str] = Field(
        default=None,
        description="Server-side filter expression"
    )

    clob_auth: Optional[ClobApiKeyCreds] = None
    gamma_auth: Optional[GammaAuth] = None


class SubscriptionAction(BaseModel):
    """
    Wire form of a subscription batch.

    Example:
        >>> action = SubscriptionAction(action="subscribe", subscriptions=[...])
        >>> action.to_frame()
        '{"action":"subscribe","subscriptions":[{"topic":"activity","type":"trades"}]}'
    """

    action: Literal["subscribe", "unsubscribe"]
    subscriptions: List[Subscription] = Field(default_factory=list)

    def to_frame(self) -> str:
        """Render as a single newline-free JSON text frame."""
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def from_frame(cls, text: str) -> "SubscriptionAction":
        """Parse a control frame produced by to_frame()."""
        return cls.model_validate_json(text)


class SubscriptionMessage(BaseModel):
    """
    Ordered collection of subscriptions sent as one control frame.

    The same batch can be rendered as either a subscribe or an unsubscribe
    action; the two forms differ only by the action tag.
    """

    subscriptions: List[Subscription] = Field(default_factory=list)

    @classmethod
    def of(cls, topic: str, type: str, filters: Optional[str] = None) -> "SubscriptionMessage":
        """Build a single-subscription message."""
        return cls(subscriptions=[Subscription(topic=topic, type=type, filters=filters)])

    def to_subscribe_action(self) -> SubscriptionAction:
        return SubscriptionAction(action="subscribe", subscriptions=list(self.subscriptions))

    def to_unsubscribe_action(self) -> SubscriptionAction:
        return SubscriptionAction(action="unsubscribe", subscriptions=list(self.subscriptions))


# ============================================
# Message (inbound envelope)
# ============================================

class Message(BaseModel):
    """
    Decoded inbound envelope.

    Attributes:
        topic: Topic the message was published on
        type: Message type within the topic
        timestamp: Server timestamp (milliseconds since epoch)
        payload: Opaque structured value, preserved exactly as received
        connection_id: Identifier of the transport session that delivered it

    Notes:
        - Unknown top-level fields are ignored
        - The payload key must be present (null is accepted) and timestamp must be a JSON integer
        - Unknown fields inside payload are preserved (payload has no schema)
        - Each decode yields an independent object, so callbacks own what they receive
    """

    model_config = ConfigDict(extra="ignore")

    topic: str
    type: str
    timestamp: int = Field(..., ge=0, strict=True)
    payload: Any = Field(..., description="Required key; may be null")
    connection_id: str

    @classmethod
    def from_frame(cls, text: str) -> "Message":
        """
        Decode a text frame into a Message.

        Raises:
            pydantic.ValidationError: If the frame is not a valid envelope
        """
        return cls.model_validate_json(text)

    @property
    def event_time(self) -> datetime:
        """Server timestamp as a timezone-aware UTC datetime."""
        return to_utc_datetime(self.timestamp)
