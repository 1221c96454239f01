"""Binance kline push feed over WebSocket.

Subscribes to a single ``<symbol>@kline_<interval>`` channel on the combined
stream endpoint and yields closed candles. Every message is decoded through
pydantic models that fail closed: a payload that does not match the schema
is dropped, never forwarded half-parsed into the indicator pipeline.

Message shape (combined stream)::

    {"stream": "bnbusdt@kline_1h",
     "data": {"e": "kline", "s": "BNBUSDT",
              "k": {"t": 1600000000000, "s": "BNBUSDT", "i": "1h",
                    "o": "25.10", "c": "25.32", "x": true, ...}}}
"""

from collections.abc import AsyncGenerator
from decimal import Decimal

import websockets
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from websockets.exceptions import WebSocketException

from trader.exceptions import ConnectivityError, DecodeError
from trader.exchange.types import ms_to_datetime
from trader.logging import get_logger
from trader.models import Candle, Origin

logger = get_logger(__name__)

# Seconds between keepalive pings and the time allowed for a pong.
_PING_INTERVAL = 20
_PING_TIMEOUT = 10


class KlinePayload(BaseModel):
    """The ``k`` object of a kline event."""

    model_config = ConfigDict(populate_by_name=True)

    open_time: int = Field(alias="t")
    symbol: str = Field(alias="s")
    interval: str = Field(alias="i")
    open: Decimal = Field(alias="o")
    close: Decimal = Field(alias="c")
    is_closed: bool = Field(alias="x", strict=True)


class KlineEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kline: KlinePayload = Field(alias="k")


class KlineMessage(BaseModel):
    """Envelope used by the combined stream endpoint."""

    stream: str
    data: KlineEvent


def stream_name(market_id: str, interval: str) -> str:
    """Channel name for a symbol/interval, e.g. ``bnbusdt@kline_1h``."""
    return f"{market_id.lower()}@kline_{interval}"


def decode_kline(raw: str | bytes) -> KlineMessage:
    """Decode one push message.

    Raises:
        DecodeError: If the payload is not JSON or does not match the schema.
    """
    try:
        return KlineMessage.model_validate_json(raw)
    except ValidationError as exc:
        raise DecodeError(f"Malformed kline message: {exc.error_count()} error(s)") from exc


class KlineSubscriber:
    """Opens live kline subscriptions against a Binance WebSocket endpoint.

    Args:
        base_url: WebSocket root, e.g. ``wss://stream.binance.us:9443``.
    """

    def __init__(self, base_url: str) -> None:
        self._base_url = base_url.rstrip("/")

    def url_for(self, channel: str) -> str:
        return f"{self._base_url}/stream?streams={channel}"

    async def subscribe(self, market_id: str, interval: str) -> AsyncGenerator[Candle, None]:
        """Yield closed candles for one channel until the connection ends.

        Messages for another channel, unclosed candles and undecodable
        payloads are skipped. A clean close ends the iteration.

        Raises:
            ConnectivityError: If the connection cannot be opened or drops
                abnormally.
        """
        channel = stream_name(market_id, interval)
        try:
            async with websockets.connect(
                self.url_for(channel),
                ping_interval=_PING_INTERVAL,
                ping_timeout=_PING_TIMEOUT,
            ) as ws:
                logger.info("kline_stream_connected", stream=channel)
                async for raw in ws:
                    try:
                        message = decode_kline(raw)
                    except DecodeError:
                        logger.warning("kline_message_dropped", stream=channel, exc_info=True)
                        continue

                    kline = message.data.kline
                    if message.stream != channel or not kline.is_closed:
                        continue

                    yield Candle(
                        timestamp=ms_to_datetime(kline.open_time),
                        open=kline.open,
                        close=kline.close,
                        origin=Origin.LIVE,
                    )
        except (OSError, WebSocketException) as exc:
            raise ConnectivityError(f"Kline stream {channel} failed: {exc}") from exc

        logger.info("kline_stream_closed", stream=channel)
