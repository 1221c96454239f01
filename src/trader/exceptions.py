"""Custom exceptions for the MACD/RSI trader.

Connectivity and decode errors are raised by the exchange layer and
interpreted by the streaming pipeline; execution errors stay inside the
executors.
"""


class TraderError(Exception):
    """Base exception for all trader errors."""


class ConnectivityError(TraderError):
    """Raised when historical candles or the live feed cannot be obtained."""


class DecodeError(TraderError):
    """Raised when a live push message does not match the kline schema."""


class InstrumentNotFoundError(TraderError):
    """Raised when a symbol is absent from the exchange's market metadata."""


class OrderRejectedError(TraderError):
    """Raised when an order for a trade intent fails exchange constraints."""


class PriceUnavailableError(TraderError):
    """Raised when the ticker carries no usable best bid/ask for an order."""
