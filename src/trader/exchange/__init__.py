"""Exchange layer -- Binance REST via ccxt and the kline WebSocket feed."""

from trader.exchange.binance_client import BinanceClient
from trader.exchange.client import ExchangeClient
from trader.exchange.kline_stream import KlineSubscriber
from trader.exchange.types import InstrumentInfo, round_to_step

__all__ = [
    "BinanceClient",
    "ExchangeClient",
    "InstrumentInfo",
    "KlineSubscriber",
    "round_to_step",
]
