"""Tests for the RSI composer: gain/loss routing, bounds and stream lifecycle."""

import asyncio
from collections.abc import AsyncIterator
from decimal import Decimal

import pytest

from trader.indicators.rsi import DEFAULT_EPSILON, compute_rsi, gains, losses, open_rsi
from trader.market_data.candle_stream import CandleStream
from trader.market_data.feed import CandleFeed, DirectFeed
from trader.models import Candle, Origin

from conftest import FakeCandleSource, make_candle

EPS = Decimal("0.000000001")


async def _candles(candles: list[Candle]) -> AsyncIterator[Candle]:
    for candle in candles:
        yield candle


async def _collect(stream: AsyncIterator) -> list:
    return [item async for item in stream]


def _feed(history: list[Candle], live: list[Candle] | None = None) -> tuple[DirectFeed, FakeCandleSource]:
    source = FakeCandleSource(history, live)
    return DirectFeed(source, "BNB/USDT", "1h"), source


class TestComputeRsi:
    """RSI = 100 - 100 / (1 + g / l)."""

    def test_equal_averages_give_fifty(self) -> None:
        assert compute_rsi(Decimal("1"), Decimal("1")) == Decimal("50")

    def test_known_ratio(self) -> None:
        assert compute_rsi(Decimal("3"), Decimal("1")) == Decimal("75")

    def test_tiny_gain_is_near_zero(self) -> None:
        assert compute_rsi(EPS, Decimal("500")) < Decimal("0.001")

    def test_tiny_loss_is_near_hundred(self) -> None:
        assert compute_rsi(Decimal("500"), EPS) > Decimal("99.999")


class TestGainLossRouting:
    """Which candles pass unchanged and which carry epsilon."""

    @pytest.mark.asyncio
    async def test_up_candle(self) -> None:
        up = make_candle(0, 12, open_=10)
        assert await _collect(gains(_candles([up]), EPS)) == [up]
        [loss] = await _collect(losses(_candles([up]), EPS))
        assert loss.close == EPS
        assert loss.timestamp == up.timestamp

    @pytest.mark.asyncio
    async def test_down_candle(self) -> None:
        down = make_candle(0, 9, open_=10)
        [gain] = await _collect(gains(_candles([down]), EPS))
        assert gain.close == EPS
        assert await _collect(losses(_candles([down]), EPS)) == [down]

    @pytest.mark.asyncio
    async def test_flat_candle_is_epsilon_on_both_sides(self) -> None:
        flat = make_candle(0, 10, open_=10)
        [gain] = await _collect(gains(_candles([flat]), EPS))
        [loss] = await _collect(losses(_candles([flat]), EPS))
        assert gain.close == EPS
        assert loss.close == EPS

    @pytest.mark.asyncio
    async def test_origin_kept_on_substituted_candle(self) -> None:
        live = make_candle(0, 9, open_=10, origin=Origin.LIVE)
        [gain] = await _collect(gains(_candles([live]), EPS))
        assert gain.origin is Origin.LIVE


class TestOpenRsi:
    """Composed RSI stream over a candle feed."""

    @pytest.mark.asyncio
    async def test_window_1_readings(self) -> None:
        """Window 1: the first step seeds, later steps track the routed close."""
        history = [
            make_candle(0, 12, open_=10),
            make_candle(1, 11, open_=12),
            make_candle(2, 13, open_=11),
            make_candle(3, 14, open_=13),  # forming candle, dropped
        ]
        feed, _ = _feed(history)
        readings = await _collect(await open_rsi(feed, window=1, epsilon=EPS))
        await feed.close()

        assert len(readings) == 3
        assert readings[0] is None
        # down candle: gain side is epsilon, loss side is the close
        assert readings[1].value < Decimal("0.001")
        # up candle: loss side is epsilon
        assert readings[2].value > Decimal("99.999")
        assert readings[2].timestamp == history[2].timestamp

    @pytest.mark.asyncio
    async def test_warm_up_length_matches_window(self) -> None:
        history = [make_candle(i, 100 + (i % 3), open_=100) for i in range(21)]
        feed, _ = _feed(history)
        readings = await _collect(await open_rsi(feed, window=14))
        await feed.close()

        assert len(readings) == 20
        assert readings[:14] == [None] * 14
        assert all(r is not None for r in readings[14:])

    @pytest.mark.asyncio
    async def test_values_stay_within_bounds(self) -> None:
        closes = [50, 52, 51, 55, 54, 53, 58, 60, 57, 56, 61, 65, 63, 62, 66, 64, 70, 68, 69, 72]
        history = [make_candle(0, closes[0])] + [
            make_candle(i, closes[i], open_=closes[i - 1]) for i in range(1, len(closes))
        ]
        live = [make_candle(len(closes) + i, 70 - i, open_=71 - i, origin=Origin.LIVE) for i in range(5)]
        feed, _ = _feed(history, live)
        readings = await _collect(await open_rsi(feed, window=3))
        await feed.close()

        values = [r.value for r in readings if r is not None]
        assert values
        assert all(Decimal(0) <= v <= Decimal(100) for v in values)
        assert readings[-1].origin is Origin.LIVE

    @pytest.mark.asyncio
    async def test_one_side_flat_never_divides_by_zero(self) -> None:
        """A run of up candles keeps the loss average at epsilon."""
        history = [make_candle(i, 100 + i, open_=99 + i) for i in range(10)]
        feed, _ = _feed(history)
        readings = await _collect(await open_rsi(feed, window=2, epsilon=DEFAULT_EPSILON))
        await feed.close()

        for reading in readings[2:]:
            assert reading.value > Decimal("99.99")

    @pytest.mark.asyncio
    async def test_non_positive_epsilon_rejected_before_opening(self) -> None:
        feed, source = _feed([make_candle(0, 1)])
        with pytest.raises(ValueError, match="epsilon"):
            await open_rsi(feed, window=3, epsilon=Decimal(0))
        assert source.history_calls == 0

    @pytest.mark.asyncio
    async def test_invalid_window_rejected_before_opening(self) -> None:
        feed, source = _feed([make_candle(0, 1)])
        with pytest.raises(ValueError):
            await open_rsi(feed, window=0)
        assert source.history_calls == 0

    @pytest.mark.asyncio
    async def test_first_stream_closed_when_second_open_fails(self) -> None:
        feed = _OneStreamFeed()
        with pytest.raises(RuntimeError):
            await open_rsi(feed, window=3)
        assert feed.closed == 1

    @pytest.mark.asyncio
    async def test_closing_readings_closes_candle_streams(self) -> None:
        history = [make_candle(i, 10 + i, open_=10) for i in range(6)]
        source = FakeCandleSource(history, hold_open=True)
        feed = DirectFeed(source, "BNB/USDT", "1h")
        readings = await open_rsi(feed, window=2)
        assert await anext(readings) is None
        await readings.aclose()

        for stream in feed._streams:
            assert stream.producer.done()
        await feed.close()


class _OneStreamFeed(CandleFeed):
    """Hands out one stream, then fails."""

    def __init__(self) -> None:
        self.opened = 0
        self.closed = 0

    async def open(self) -> CandleStream:
        self.opened += 1
        if self.opened > 1:
            raise RuntimeError("no more streams")

        async def on_close() -> None:
            self.closed += 1

        return CandleStream(asyncio.Queue(), on_close=on_close)
