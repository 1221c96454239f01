"""Tests for ExchangeCandleSource."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import ccxt.async_support as ccxt_async
import pytest

from trader.exceptions import ConnectivityError
from trader.market_data.candle_source import ExchangeCandleSource
from trader.models import Origin


@pytest.fixture
def exchange() -> MagicMock:
    client = MagicMock()
    client.fetch_ohlcv = AsyncMock(
        return_value=[
            [1704067200000, 300.1, 301.0, 299.5, 300.8, 12.5],
            [1704070800000, 300.8, 302.2, 300.0, 301.9, 8.0],
        ]
    )
    client.market_id = MagicMock(return_value="BNBUSDT")
    return client


class TestFetchHistorical:
    """OHLCV rows become historical candles."""

    @pytest.mark.asyncio
    async def test_rows_mapped_to_candles(self, exchange: MagicMock) -> None:
        source = ExchangeCandleSource(exchange, MagicMock(), history_limit=250)
        candles = await source.fetch_historical("BNB/USDT", "1h")

        exchange.fetch_ohlcv.assert_awaited_once_with("BNB/USDT", "1h", limit=250)
        assert len(candles) == 2
        first = candles[0]
        assert first.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert first.open == Decimal("300.1")
        assert first.close == Decimal("300.8")
        assert first.origin is Origin.HISTORICAL

    @pytest.mark.asyncio
    async def test_empty_history(self, exchange: MagicMock) -> None:
        exchange.fetch_ohlcv.return_value = []
        source = ExchangeCandleSource(exchange, MagicMock())
        assert await source.fetch_historical("BNB/USDT", "1h") == []

    @pytest.mark.asyncio
    async def test_ccxt_error_becomes_connectivity_error(self, exchange: MagicMock) -> None:
        exchange.fetch_ohlcv.side_effect = ccxt_async.NetworkError("timeout")
        source = ExchangeCandleSource(exchange, MagicMock())
        with pytest.raises(ConnectivityError, match="BNB/USDT 1h"):
            await source.fetch_historical("BNB/USDT", "1h")


class TestSubscribeLive:
    def test_uses_native_market_id(self, exchange: MagicMock) -> None:
        subscriber = MagicMock()
        source = ExchangeCandleSource(exchange, subscriber)

        result = source.subscribe_live("BNB/USDT", "4h")

        exchange.market_id.assert_called_once_with("BNB/USDT")
        subscriber.subscribe.assert_called_once_with("BNBUSDT", "4h")
        assert result is subscriber.subscribe.return_value
