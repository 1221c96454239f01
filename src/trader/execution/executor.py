"""Abstract executor interface.

Defines the contract for turning trade intents into orders. Both
PaperExecutor and LiveExecutor implement this ABC so the trading session is
identical regardless of trading mode. The signal layer never re-emits an
intent: an executor attempts it once and reports what happened.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from trader.exceptions import PriceUnavailableError
from trader.exchange.types import to_decimal
from trader.models import OrderResult, OrderSide, TradeIntent


def quote_price(ticker: dict, side: OrderSide) -> Decimal:
    """Best price to cross the book: the ask for buys, the bid for sells.

    Raises:
        PriceUnavailableError: If the ticker has no positive price on that side.
    """
    field = "ask" if side == OrderSide.BUY else "bid"
    raw = ticker.get(field)
    if raw is None:
        raise PriceUnavailableError(f"Ticker for {ticker.get('symbol')} has no {field}")
    price = to_decimal(raw)
    if price <= 0:
        raise PriceUnavailableError(f"Ticker for {ticker.get('symbol')} has {field}={price}")
    return price


class Executor(ABC):
    """Abstract base class for intent executors."""

    @abstractmethod
    async def execute(self, intent: TradeIntent) -> OrderResult | None:
        """Attempt one order for the intent.

        Args:
            intent: BuyIntent or SellIntent from the signal state machine.

        Returns:
            OrderResult with fill details, or None when no order was filled.
            Failures are logged, never raised to the trading session.
        """
        ...
