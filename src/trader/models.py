"""Shared data models for the MACD/RSI trader.

CRITICAL: All prices and indicator values use Decimal. Float is only produced
at the ccxt boundary when an order is submitted.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar


class Origin(str, Enum):
    """Which segment of the unified candle stream an item came from."""

    HISTORICAL = "historical"
    LIVE = "live"


class OrderSide(str, Enum):
    """Order direction."""

    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type."""

    MARKET = "market"
    LIMIT = "limit"


@dataclass(frozen=True)
class Candle:
    """A closed candlestick bar, reduced to what the indicators consume."""

    timestamp: datetime  # candle open time, UTC
    open: Decimal
    close: Decimal
    origin: Origin = Origin.HISTORICAL


@dataclass(frozen=True)
class Reading:
    """One indicator value aligned with the candle that produced it.

    Indicator streams yield ``Reading | None``; ``None`` marks a step at
    which the indicator is still warming up.
    """

    timestamp: datetime
    value: Decimal
    origin: Origin


@dataclass
class ConfirmationState:
    """Per-side arming state of the signal state machine."""

    baseline_macd: Decimal | None = None
    confirm_count: int = 0

    @property
    def armed(self) -> bool:
        return self.baseline_macd is not None

    def reset(self) -> None:
        self.baseline_macd = None
        self.confirm_count = 0


@dataclass(frozen=True)
class TradeIntent:
    """A request from the signal layer to trade, consumed by an executor."""

    side: ClassVar[OrderSide]

    timestamp: datetime
    rsi: Decimal
    macd: Decimal
    confirm_count: int


@dataclass(frozen=True)
class BuyIntent(TradeIntent):
    side: ClassVar[OrderSide] = OrderSide.BUY


@dataclass(frozen=True)
class SellIntent(TradeIntent):
    side: ClassVar[OrderSide] = OrderSide.SELL


@dataclass
class OrderRequest:
    """Request to place an order."""

    symbol: str
    side: OrderSide
    order_type: OrderType
    quantity: Decimal
    price: Decimal | None = None


@dataclass
class OrderResult:
    """Result of an executed order."""

    order_id: str
    symbol: str
    side: OrderSide
    filled_qty: Decimal
    filled_price: Decimal
    timestamp: float
    is_simulated: bool = False
