"""Tests for the MACD composer."""

from collections.abc import AsyncIterator
from decimal import Decimal

import pytest

from trader.indicators.macd import open_macd
from trader.market_data.feed import BroadcastFeed, DirectFeed
from trader.models import Origin

from conftest import FakeCandleSource, make_candle


async def _collect(stream: AsyncIterator) -> list:
    return [item async for item in stream]


class TestOpenMacd:
    """Fast EMA minus slow EMA over two private candle streams."""

    @pytest.mark.asyncio
    async def test_known_values(self) -> None:
        """fast=2 (k=2/3), slow=3 (k=1/2), closes 1..6.

        fast: seed 1.5 at index 1, then 2.5, 3.5, 4.5, 5.5
        slow: seed 2 at index 2, then 3, 4, 5
        MACD from index 3: 0.5 each step
        """
        history = [make_candle(i, i + 1) for i in range(7)]
        source = FakeCandleSource(history)
        feed = DirectFeed(source, "BNB/USDT", "1h")
        readings = await _collect(await open_macd(feed, fast=2, slow=3))
        await feed.close()

        assert len(readings) == 6
        assert readings[:3] == [None, None, None]
        for reading in readings[3:]:
            assert abs(reading.value - Decimal("0.5")) < Decimal("1e-20")

    @pytest.mark.asyncio
    async def test_not_ready_until_slow_window_filled(self) -> None:
        history = [make_candle(i, 200 - i) for i in range(41)]
        feed = DirectFeed(FakeCandleSource(history), "BNB/USDT", "1h")
        readings = await _collect(await open_macd(feed))
        await feed.close()

        assert readings[:26] == [None] * 26
        assert all(r is not None for r in readings[26:])

    @pytest.mark.asyncio
    async def test_falling_prices_give_negative_macd(self) -> None:
        history = [make_candle(i, 200 - i) for i in range(41)]
        feed = DirectFeed(FakeCandleSource(history), "BNB/USDT", "1h")
        readings = await _collect(await open_macd(feed))
        await feed.close()

        assert all(r.value < 0 for r in readings[26:])

    @pytest.mark.asyncio
    async def test_reading_carries_candle_stamp(self) -> None:
        history = [make_candle(i, i + 1) for i in range(4)]
        live = [make_candle(4, 9, origin=Origin.LIVE)]
        feed = DirectFeed(FakeCandleSource(history, live), "BNB/USDT", "1h")
        readings = await _collect(await open_macd(feed, fast=1, slow=2))
        await feed.close()

        last = readings[-1]
        assert last.timestamp == live[0].timestamp
        assert last.origin is Origin.LIVE

    @pytest.mark.asyncio
    async def test_same_values_through_broadcast_feed(self) -> None:
        history = [make_candle(i, (i * 7) % 11 + 20) for i in range(30)]
        direct = DirectFeed(FakeCandleSource(history), "BNB/USDT", "1h")
        expected = await _collect(await open_macd(direct, fast=3, slow=5))
        await direct.close()

        broadcast = BroadcastFeed(FakeCandleSource(history), "BNB/USDT", "1h", subscribers=2)
        actual = await _collect(await open_macd(broadcast, fast=3, slow=5))
        await broadcast.close()

        assert actual == expected

    @pytest.mark.asyncio
    async def test_invalid_window_rejected_before_opening(self) -> None:
        source = FakeCandleSource([make_candle(0, 1)])
        feed = DirectFeed(source, "BNB/USDT", "1h")
        with pytest.raises(ValueError):
            await open_macd(feed, fast=0, slow=26)
        assert source.history_calls == 0
