"""Candle source adapter -- historical batch plus live subscription.

The streaming pipeline only needs two capabilities from the connectivity
layer: fetch the recent history of a symbol/interval, and subscribe to its
closed candles as they arrive. ExchangeCandleSource provides both on top of
the ccxt REST client and the kline WebSocket subscriber.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

import ccxt.async_support

from trader.exceptions import ConnectivityError
from trader.exchange.client import ExchangeClient
from trader.exchange.kline_stream import KlineSubscriber
from trader.exchange.types import ms_to_datetime, to_decimal
from trader.logging import get_logger
from trader.models import Candle, Origin

logger = get_logger(__name__)


class CandleSource(ABC):
    """Contract consumed by the unified candle stream."""

    @abstractmethod
    async def fetch_historical(self, symbol: str, interval: str) -> list[Candle]:
        """Return recent candles oldest first, the forming candle included last.

        Raises:
            ConnectivityError: If the history cannot be fetched.
        """
        ...

    @abstractmethod
    def subscribe_live(self, symbol: str, interval: str) -> AsyncGenerator[Candle, None]:
        """Return an async iterator of closed candles for symbol/interval.

        The iterator ends on a clean disconnect and raises ConnectivityError
        on a failed or dropped connection.
        """
        ...


class ExchangeCandleSource(CandleSource):
    """CandleSource backed by an ExchangeClient and a KlineSubscriber.

    Args:
        exchange: REST client used for the historical batch.
        subscriber: WebSocket subscriber used for the live feed.
        history_limit: Number of candles requested for the historical batch.
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        subscriber: KlineSubscriber,
        history_limit: int = 500,
    ) -> None:
        self._exchange = exchange
        self._subscriber = subscriber
        self._history_limit = history_limit

    async def fetch_historical(self, symbol: str, interval: str) -> list[Candle]:
        try:
            rows = await self._exchange.fetch_ohlcv(
                symbol, interval, limit=self._history_limit
            )
        except ccxt.async_support.BaseError as exc:
            raise ConnectivityError(
                f"Historical fetch failed for {symbol} {interval}: {exc}"
            ) from exc

        # ccxt rows: [timestamp_ms, open, high, low, close, volume]
        candles = [
            Candle(
                timestamp=ms_to_datetime(int(row[0])),
                open=to_decimal(row[1]),
                close=to_decimal(row[4]),
                origin=Origin.HISTORICAL,
            )
            for row in rows
        ]
        logger.debug("historical_candles_fetched", symbol=symbol, count=len(candles))
        return candles

    def subscribe_live(self, symbol: str, interval: str) -> AsyncGenerator[Candle, None]:
        return self._subscriber.subscribe(self._exchange.market_id(symbol), interval)
