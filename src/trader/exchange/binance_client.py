"""Binance exchange client implementation via ccxt async.

Wraps ccxt.async_support.binance (or binanceus) with market loading,
instrument info extraction, and async cleanup.
"""

import ccxt.async_support as ccxt_async

from trader.config import ExchangeSettings
from trader.exceptions import InstrumentNotFoundError
from trader.exchange.client import ExchangeClient
from trader.exchange.types import InstrumentInfo, to_decimal
from trader.logging import get_logger

logger = get_logger(__name__)


class BinanceClient(ExchangeClient):
    """Concrete Binance exchange client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings

        config: dict = {
            "apiKey": settings.api_key.get_secret_value(),
            "secret": settings.api_secret.get_secret_value(),
            "enableRateLimit": True,
            "options": {
                "defaultType": "spot",
            },
        }

        exchange_class = getattr(ccxt_async, settings.exchange_id)
        self._exchange = exchange_class(config)
        self._markets: dict = {}

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info("connecting_to_exchange", exchange=self._settings.exchange_id)
        self._markets = await self._exchange.load_markets()
        logger.info(
            "exchange_connected",
            exchange=self._settings.exchange_id,
            market_count=len(self._markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_exchange_connection")
        await self._exchange.close()
        logger.info("exchange_connection_closed")

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1h",
        limit: int | None = None,
    ) -> list[list]:
        """Fetch recent OHLCV rows via ccxt, oldest first."""
        return await self._exchange.fetch_ohlcv(symbol, timeframe, limit=limit)

    async def fetch_ticker(self, symbol: str) -> dict:
        """Fetch current ticker data for a single symbol."""
        return await self._exchange.fetch_ticker(symbol)

    async def get_instrument_info(self, symbol: str) -> InstrumentInfo:
        """Extract instrument constraints from cached market data.

        All numeric values are converted to Decimal for precision.
        """
        market = self._markets.get(symbol)
        if not market:
            raise InstrumentNotFoundError(f"Symbol {symbol} not found in loaded markets")

        limits = market.get("limits", {})
        precision = market.get("precision", {})
        amount_limits = limits.get("amount", {})
        cost_limits = limits.get("cost", {})

        return InstrumentInfo(
            symbol=symbol,
            base=market.get("base", ""),
            quote=market.get("quote", ""),
            min_qty=to_decimal(amount_limits.get("min") or 0),
            max_qty=to_decimal(amount_limits.get("max") or 0),
            qty_step=to_decimal(precision.get("amount") or 0),
            min_notional=to_decimal(cost_limits.get("min") or 0),
            tick_size=to_decimal(precision.get("price") or 0),
        )

    def market_id(self, symbol: str) -> str:
        """Return the Binance-native id, falling back to stripping the slash."""
        market = self._markets.get(symbol)
        if market and market.get("id"):
            return market["id"]
        return symbol.replace("/", "").upper()

    async def create_order(
        self,
        symbol: str,
        order_type: str,
        side: str,
        amount: float,
        price: float | None = None,
        params: dict | None = None,
    ) -> dict:
        """Place an order via ccxt."""
        logger.info(
            "creating_order",
            symbol=symbol,
            order_type=order_type,
            side=side,
            amount=amount,
            price=price,
        )
        return await self._exchange.create_order(
            symbol, order_type, side, amount, price, params=params or {}
        )
