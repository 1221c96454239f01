"""MACD line: fast EMA minus slow EMA, paired in lockstep."""

from collections.abc import AsyncIterator

from trader.indicators.ema import EmaEngine
from trader.indicators.pairing import combine_readings
from trader.logging import get_logger
from trader.market_data.candle_stream import CandleStream
from trader.market_data.feed import CandleFeed
from trader.models import Reading

logger = get_logger(__name__)

DEFAULT_FAST_WINDOW = 12
DEFAULT_SLOW_WINDOW = 26


def _macd_reading(fast: Reading, slow: Reading) -> Reading:
    return Reading(fast.timestamp, fast.value - slow.value, fast.origin)


async def _macd_readings(
    fast_candles: CandleStream,
    slow_candles: CandleStream,
    fast_engine: EmaEngine,
    slow_engine: EmaEngine,
) -> AsyncIterator[Reading | None]:
    try:
        async for reading in combine_readings(
            fast_engine.run(fast_candles),
            slow_engine.run(slow_candles),
            _macd_reading,
            indicator="macd",
        ):
            yield reading
    finally:
        await fast_candles.aclose()
        await slow_candles.aclose()


async def open_macd(
    feed: CandleFeed,
    fast: int = DEFAULT_FAST_WINDOW,
    slow: int = DEFAULT_SLOW_WINDOW,
) -> AsyncIterator[Reading | None]:
    """Open two candle streams from the feed and return the MACD reading stream.

    Each EMA engine reads its own stream since engine state cannot be
    shared. None is yielded until the slower engine has warmed up.

    Raises:
        ValueError: If a window is not positive.
        ConnectivityError: If a candle stream cannot be opened.
    """
    fast_engine = EmaEngine(fast)
    slow_engine = EmaEngine(slow)

    fast_candles = await feed.open()
    try:
        slow_candles = await feed.open()
    except Exception:
        await fast_candles.aclose()
        raise

    logger.debug("macd_stream_opened", fast=fast, slow=slow)
    return _macd_readings(fast_candles, slow_candles, fast_engine, slow_engine)
