"""Relative Strength Index composed from two EMA engines.

Each candle is routed into a gains stream and a losses stream:

- gains: the candle passes unchanged when it closed above its open,
  otherwise its close is replaced by epsilon;
- losses: the candle passes unchanged when it closed below its open,
  otherwise its close is replaced by epsilon.

Both are smoothed by their own EmaEngine over the same window and paired in
lockstep. With both averages present:

    RSI = 100 - 100 / (1 + avg_gain / avg_loss)

Epsilon is a small positive stand-in for "no move on this side": the
averages stay strictly positive, so the ratio is always defined and the
result stays within [0, 100].
"""

from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import replace
from decimal import Decimal

from trader.indicators.ema import EmaEngine
from trader.indicators.pairing import combine_readings
from trader.logging import get_logger
from trader.market_data.candle_stream import CandleStream
from trader.market_data.feed import CandleFeed
from trader.models import Candle, Reading

logger = get_logger(__name__)

DEFAULT_RSI_WINDOW = 14
DEFAULT_EPSILON = Decimal("0.000000001")

_HUNDRED = Decimal(100)
_ONE = Decimal(1)


async def gains(candles: AsyncIterable[Candle], epsilon: Decimal) -> AsyncIterator[Candle]:
    async for candle in candles:
        if candle.close - candle.open > 0:
            yield candle
        else:
            yield replace(candle, close=epsilon)


async def losses(candles: AsyncIterable[Candle], epsilon: Decimal) -> AsyncIterator[Candle]:
    async for candle in candles:
        if candle.close - candle.open < 0:
            yield candle
        else:
            yield replace(candle, close=epsilon)


def compute_rsi(avg_gain: Decimal, avg_loss: Decimal) -> Decimal:
    """RSI from smoothed gain and loss averages. avg_loss must be non-zero."""
    return _HUNDRED - _HUNDRED / (_ONE + avg_gain / avg_loss)


def _rsi_reading(gain: Reading, loss: Reading) -> Reading:
    return Reading(loss.timestamp, compute_rsi(gain.value, loss.value), loss.origin)


async def _rsi_readings(
    gain_candles: CandleStream,
    loss_candles: CandleStream,
    gain_engine: EmaEngine,
    loss_engine: EmaEngine,
    epsilon: Decimal,
) -> AsyncIterator[Reading | None]:
    try:
        async for reading in combine_readings(
            gain_engine.run(gains(gain_candles, epsilon)),
            loss_engine.run(losses(loss_candles, epsilon)),
            _rsi_reading,
            indicator="rsi",
        ):
            yield reading
    finally:
        await gain_candles.aclose()
        await loss_candles.aclose()


async def open_rsi(
    feed: CandleFeed,
    window: int = DEFAULT_RSI_WINDOW,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> AsyncIterator[Reading | None]:
    """Open two candle streams from the feed and return the RSI reading stream.

    One item is yielded per candle: None during warm-up, otherwise a Reading
    stamped with the loss side's timestamp and origin.

    Raises:
        ValueError: If window or epsilon is not positive.
        ConnectivityError: If a candle stream cannot be opened.
    """
    if epsilon <= 0:
        raise ValueError(f"RSI epsilon must be positive, got {epsilon}")
    gain_engine = EmaEngine(window)
    loss_engine = EmaEngine(window)

    gain_candles = await feed.open()
    try:
        loss_candles = await feed.open()
    except Exception:
        await gain_candles.aclose()
        raise

    logger.debug("rsi_stream_opened", window=window)
    return _rsi_readings(gain_candles, loss_candles, gain_engine, loss_engine, epsilon)
