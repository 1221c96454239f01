"""Market data layer -- candle sources, unified candle streams and feeds."""

from trader.market_data.candle_source import CandleSource, ExchangeCandleSource
from trader.market_data.candle_stream import (
    CandleStream,
    UnifiedCandleStream,
    open_candle_stream,
)
from trader.market_data.feed import BroadcastFeed, CandleFeed, DirectFeed

__all__ = [
    "BroadcastFeed",
    "CandleFeed",
    "CandleSource",
    "CandleStream",
    "DirectFeed",
    "ExchangeCandleSource",
    "UnifiedCandleStream",
    "open_candle_stream",
]
