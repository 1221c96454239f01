"""Live trading executor via exchange client.

Each intent becomes one immediate-or-cancel limit order at the best ask
(buy) or bid (sell). The configured quantity is rounded down to the
instrument's lot step and checked against its minimums first. Prices and
quantities stay Decimal until they are handed to ccxt.

The quantity is the fixed configured value; nothing sizes it against the
account balance. A sell without enough base asset is rejected by the
exchange, logged as ccxt's InsufficientFunds and yields no fill.
"""

import time
from decimal import Decimal

import ccxt.async_support

from trader.exceptions import (
    InstrumentNotFoundError,
    OrderRejectedError,
    PriceUnavailableError,
)
from trader.exchange.client import ExchangeClient
from trader.exchange.types import round_to_step, to_decimal
from trader.execution.executor import Executor, quote_price
from trader.logging import get_logger
from trader.models import OrderRequest, OrderResult, OrderType, TradeIntent

logger = get_logger(__name__)


class LiveExecutor(Executor):
    """Real order executor that delegates to an exchange client.

    Args:
        exchange_client: The exchange client to place real orders through.
        symbol: Unified symbol to trade.
        quantity: Base-asset quantity requested per intent.
    """

    def __init__(
        self, exchange_client: ExchangeClient, symbol: str, quantity: Decimal
    ) -> None:
        self._exchange_client = exchange_client
        self._symbol = symbol
        self._quantity = quantity

    async def execute(self, intent: TradeIntent) -> OrderResult | None:
        try:
            request = await self._build_request(intent)
            return await self._place(request)
        except OrderRejectedError as e:
            logger.info(
                "live_order_skipped",
                symbol=self._symbol,
                side=intent.side.value,
                reason=str(e),
            )
        except (
            PriceUnavailableError,
            InstrumentNotFoundError,
            ccxt.async_support.BaseError,
        ):
            logger.warning(
                "live_order_failed",
                symbol=self._symbol,
                side=intent.side.value,
                exc_info=True,
            )
        return None

    async def _build_request(self, intent: TradeIntent) -> OrderRequest:
        """Price the order off the book and fit the quantity to the instrument.

        Raises:
            OrderRejectedError: If the rounded quantity or notional falls
                below the instrument minimums.
        """
        ticker = await self._exchange_client.fetch_ticker(self._symbol)
        price = quote_price(ticker, intent.side)
        info = await self._exchange_client.get_instrument_info(self._symbol)

        quantity = round_to_step(self._quantity, info.qty_step)
        if quantity <= 0 or quantity < info.min_qty:
            raise OrderRejectedError(
                f"quantity {quantity} below minimum {info.min_qty} {info.base}"
            )
        notional = quantity * price
        if notional < info.min_notional:
            raise OrderRejectedError(
                f"notional {notional} below minimum {info.min_notional} {info.quote}"
            )

        return OrderRequest(
            symbol=self._symbol,
            side=intent.side,
            order_type=OrderType.LIMIT,
            quantity=quantity,
            price=price,
        )

    async def _place(self, request: OrderRequest) -> OrderResult:
        """Submit the order and parse the ccxt result into an OrderResult."""
        result = await self._exchange_client.create_order(
            symbol=request.symbol,
            order_type=request.order_type.value,
            side=request.side.value,
            amount=float(request.quantity),
            price=float(request.price) if request.price is not None else None,
            params={"timeInForce": "IOC"},
        )

        # Parse ccxt order result -- all values through Decimal(str()) to avoid float
        order_id = str(result.get("id", ""))
        filled_qty = to_decimal(result.get("filled") or 0)
        average_price = result.get("average") or result.get("price")
        filled_price = to_decimal(average_price) if average_price else Decimal("0")

        timestamp = result.get("timestamp")
        ts = float(timestamp) / 1000.0 if timestamp else time.time()

        logger.info(
            "live_order_filled",
            order_id=order_id,
            symbol=request.symbol,
            side=request.side.value,
            quantity=str(filled_qty),
            fill_price=str(filled_price),
            status=result.get("status"),
        )

        return OrderResult(
            order_id=order_id,
            symbol=request.symbol,
            side=request.side,
            filled_qty=filled_qty,
            filled_price=filled_price,
            timestamp=ts,
            is_simulated=False,
        )
