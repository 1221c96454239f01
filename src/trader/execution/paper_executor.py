"""Paper trading executor with simulated fills.

Reads the current best ask/bid from the exchange ticker and fills the
configured quantity instantly at that price. No order reaches the exchange.
"""

import time
from decimal import Decimal
from uuid import uuid4

import ccxt.async_support

from trader.exceptions import PriceUnavailableError
from trader.exchange.client import ExchangeClient
from trader.execution.executor import Executor, quote_price
from trader.logging import get_logger
from trader.models import OrderResult, TradeIntent

logger = get_logger(__name__)


class PaperExecutor(Executor):
    """Simulated executor for paper trading.

    Args:
        exchange_client: Used only for public ticker data.
        symbol: Unified symbol to trade, e.g. "BNB/USDT".
        quantity: Base-asset quantity filled per intent.
    """

    def __init__(
        self, exchange_client: ExchangeClient, symbol: str, quantity: Decimal
    ) -> None:
        self._exchange_client = exchange_client
        self._symbol = symbol
        self._quantity = quantity
        self._fills: list[OrderResult] = []

    @property
    def fills(self) -> list[OrderResult]:
        """Simulated fills in the order they happened."""
        return list(self._fills)

    async def execute(self, intent: TradeIntent) -> OrderResult | None:
        try:
            ticker = await self._exchange_client.fetch_ticker(self._symbol)
            price = quote_price(ticker, intent.side)
        except (PriceUnavailableError, ccxt.async_support.BaseError):
            logger.warning(
                "paper_order_skipped",
                symbol=self._symbol,
                side=intent.side.value,
                exc_info=True,
            )
            return None

        result = OrderResult(
            order_id=f"paper_{uuid4().hex[:12]}",
            symbol=self._symbol,
            side=intent.side,
            filled_qty=self._quantity,
            filled_price=price,
            timestamp=time.time(),
            is_simulated=True,
        )
        self._fills.append(result)

        logger.info(
            "paper_order_filled",
            order_id=result.order_id,
            symbol=self._symbol,
            side=intent.side.value,
            quantity=str(self._quantity),
            fill_price=str(price),
            rsi=str(intent.rsi),
            macd=str(intent.macd),
            confirmations=intent.confirm_count,
        )
        return result
