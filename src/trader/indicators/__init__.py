"""Streaming indicators -- EMA engine, lockstep pairing, RSI and MACD composers."""

from trader.indicators.ema import EmaEngine, ema_stream
from trader.indicators.macd import open_macd
from trader.indicators.pairing import combine_readings, lockstep
from trader.indicators.rsi import compute_rsi, gains, losses, open_rsi

__all__ = [
    "EmaEngine",
    "combine_readings",
    "compute_rsi",
    "ema_stream",
    "gains",
    "lockstep",
    "losses",
    "open_macd",
    "open_rsi",
]
