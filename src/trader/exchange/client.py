"""Abstract exchange client interface.

Defines the REST contract the trader needs from an exchange. The candle
source and the executors depend only on this interface, keeping
ccxt-specific details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod

from trader.exchange.types import InstrumentInfo


class ExchangeClient(ABC):
    """Abstract base class for exchange API clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets/instruments."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1h",
        limit: int | None = None,
    ) -> list[list]:
        """Fetch the most recent OHLCV candles, oldest first.

        Returns list of [timestamp_ms, open, high, low, close, volume]. The
        last row is the candle that is still forming.
        """
        ...

    @abstractmethod
    async def fetch_ticker(self, symbol: str) -> dict:
        """Fetch current ticker data (including best bid/ask) for a symbol."""
        ...

    @abstractmethod
    async def get_instrument_info(self, symbol: str) -> InstrumentInfo:
        """Get trading constraints for a symbol (lot size, min notional, assets)."""
        ...

    @abstractmethod
    def market_id(self, symbol: str) -> str:
        """Return the exchange-native id for a unified symbol (BNB/USDT -> BNBUSDT)."""
        ...

    @abstractmethod
    async def create_order(
        self,
        symbol: str,
        order_type: str,
        side: str,
        amount: float,
        price: float | None = None,
        params: dict | None = None,
    ) -> dict:
        """Place an order on the exchange."""
        ...
