"""
Copy Trader Service

Watches the activity feed for trades made by a target wallet and mirrors its
BUY trades through an order executor.

Flow:
    activity message -> target wallet? -> side == BUY? -> size/price/asset present?
        -> amount = clamp(price * size * multiplier, min, max)
        -> executor.submit_market_buy(asset, amount)   (background task)

Activity Payload Fields Used:
    {
      "name": "trader-name",      // display name of the trading wallet
      "proxyWallet": "0x...",     // logged on target matches
      "side": "BUY",
      "size": 12.5,               // shares
      "price": 0.42,              // USDC per share
      "asset": "7132...",         // token id
    }

Building, signing and posting real orders belongs to the trading SDK behind
the OrderExecutor protocol. DryRunOrderExecutor only logs.
"""

import asyncio
from decimal import Decimal
from typing import Any, Optional, Protocol, Set, Tuple

from core.config import settings
from core.logging import get_logger
from core.schemas import Message
from core.utils.time import current_utc_timestamp
from services.event_bus import EventBus, bus


ACTIVITY_TOPIC = "activity"


def clamp_order_amount(
    price: float,
    size: float,
    multiplier: float,
    min_amount: Decimal,
    max_amount: Decimal,
) -> Decimal:
    """
    Compute the USDC amount of a mirrored order.

    Example:
        >>> clamp_order_amount(0.5, 4, 1.0, Decimal("1"), Decimal("4"))
        Decimal('2.00')
    """
    amount = Decimal(str(price)) * Decimal(str(size)) * Decimal(str(multiplier))
    if amount < min_amount:
        return min_amount
    if amount > max_amount:
        return max_amount
    return amount


class OrderExecutor(Protocol):
    """Trading SDK boundary: build, sign and submit a market BUY order."""

    async def submit_market_buy(self, token_id: str, amount: Decimal) -> Any:
        ...


class DryRunOrderExecutor:
    """OrderExecutor that logs the order instead of submitting it."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    async def submit_market_buy(self, token_id: str, amount: Decimal) -> dict:
        self._logger.info(f"[dry-run] Market BUY {amount} USDC of token {token_id} (FAK)")
        return {
            "token_id": token_id,
            "side": "BUY",
            "order_type": "FAK",
            "amount": str(amount),
            "submitted_at": current_utc_timestamp(milliseconds=True),
            "dry_run": True,
        }


class CopyTraderService:
    """
    Background service mirroring a target wallet's BUY trades.
    """

    def __init__(
        self,
        executor: Optional[OrderExecutor] = None,
        target_wallet: Optional[str] = None,
        multiplier: Optional[float] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        enable_trading: Optional[bool] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self._executor = executor or DryRunOrderExecutor()
        self.target_wallet = target_wallet if target_wallet is not None else settings.target_wallet
        self.multiplier = multiplier if multiplier is not None else settings.multiplier
        self.min_amount = Decimal(str(min_amount if min_amount is not None else settings.min_order_usdc))
        self.max_amount = Decimal(str(max_amount if max_amount is not None else settings.max_order_usdc))
        self.enable_trading = enable_trading if enable_trading is not None else settings.enable_trading
        self._bus = event_bus or bus

        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._orders: Set[asyncio.Task] = set()

    # ============================================
    # Decision Logic
    # ============================================

    def evaluate(self, message: Message) -> Optional[Tuple[str, Decimal]]:
        """
        Decide whether a message should be mirrored.

        Returns:
            (token_id, amount) for a qualifying BUY, otherwise None
        """
        payload = message.payload
        if not isinstance(payload, dict) or not self.target_wallet:
            return None

        if payload.get("name") != self.target_wallet:
            return None
        if payload.get("side") != "BUY":
            return None

        size = payload.get("size")
        price = payload.get("price")
        token_id = payload.get("asset")
        # bool is an int subclass; reject it explicitly
        if not isinstance(size, (int, float)) or isinstance(size, bool):
            return None
        if not isinstance(price, (int, float)) or isinstance(price, bool):
            return None
        if not isinstance(token_id, str) or not token_id:
            return None

        amount = clamp_order_amount(price, size, self.multiplier, self.min_amount, self.max_amount)
        return token_id, amount

    async def handle(self, message: Message) -> None:
        """Inspect one activity message and submit a mirrored order if it qualifies."""
        payload = message.payload
        if isinstance(payload, dict) and self.target_wallet and payload.get("name") == self.target_wallet:
            self._logger.info(f"Target wallet trade: proxyWallet={payload.get('proxyWallet')}")

        if not self.enable_trading:
            return

        order = self.evaluate(message)
        if order is None:
            return

        token_id, amount = order
        task = asyncio.create_task(self._submit(token_id, amount), name=f"copy_order_{token_id[:12]}")
        self._orders.add(task)
        task.add_done_callback(self._orders.discard)

    async def _submit(self, token_id: str, amount: Decimal) -> None:
        try:
            response = await self._executor.submit_market_buy(token_id, amount)
            self._logger.info(f"Order submitted successfully for token_id {token_id}: {response}")
        except Exception as e:
            self._logger.error(f"Error submitting order for token_id {token_id}: {e}")

    # ============================================
    # Lifecycle
    # ============================================

    async def start(self) -> None:
        if self._task is not None:
            return
        self._queue = await self._bus.subscribe(ACTIVITY_TOPIC)
        self._task = asyncio.create_task(self._consume(self._queue), name="copy_trader")
        self._logger.info(
            f"Starting CopyTraderService (target={self.target_wallet or '-'}, "
            f"trading={'on' if self.enable_trading else 'off'}, "
            f"range={self.min_amount}-{self.max_amount} USDC, x{self.multiplier})"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._logger.info("Stopping CopyTraderService...")
        self._task.cancel()
        for t in list(self._orders):
            t.cancel()
        await asyncio.gather(self._task, *self._orders, return_exceptions=True)
        await self._bus.unsubscribe(ACTIVITY_TOPIC, self._queue)
        self._task = None
        self._queue = None

    async def _consume(self, queue: asyncio.Queue) -> None:
        while True:
            message = await queue.get()
            await self.handle(message)
