"""Entry point for the MACD/RSI trader.

Wires all components together and runs one trading session. Handles
SIGINT/SIGTERM for graceful shutdown.

Component wiring order:
1. AppSettings (configuration from environment / .env)
2. Logging setup
3. ExchangeClient (BinanceClient via ccxt)
4. CandleSource (REST history + WebSocket kline feed)
5. Executor (PaperExecutor or LiveExecutor based on mode)
6. TradingSession (indicator pipeline + signal state machine)
"""

import asyncio
import signal
import sys

import ccxt.async_support

from trader.config import AppSettings
from trader.exceptions import ConnectivityError
from trader.exchange.binance_client import BinanceClient
from trader.exchange.client import ExchangeClient
from trader.exchange.kline_stream import KlineSubscriber
from trader.execution.executor import Executor
from trader.logging import get_logger, setup_logging
from trader.market_data.candle_source import ExchangeCandleSource
from trader.session import TradingSession


def _build_executor(settings: AppSettings, exchange_client: ExchangeClient) -> Executor:
    """Pick the executor for the configured trading mode."""
    trading = settings.trading
    if trading.mode == "live":
        from trader.execution.live_executor import LiveExecutor

        return LiveExecutor(exchange_client, trading.symbol, trading.order_quantity)

    from trader.execution.paper_executor import PaperExecutor

    return PaperExecutor(exchange_client, trading.symbol, trading.order_quantity)


def _setup_signal_handlers(session: TradingSession) -> set[asyncio.Task]:
    """Register SIGINT/SIGTERM to stop the session gracefully.

    Must be called after the asyncio event loop is running.

    Returns:
        The set holding in-flight stop tasks until they finish.
    """
    logger = get_logger("trader.main")
    loop = asyncio.get_running_loop()
    stop_tasks: set[asyncio.Task] = set()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        task = asyncio.create_task(session.stop())
        stop_tasks.add(task)
        task.add_done_callback(stop_tasks.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)
    return stop_tasks


async def run(settings: AppSettings | None = None) -> int:
    """Run the trader until the live feed ends or a shutdown signal arrives.

    Returns:
        Process exit code: 0 on a normal stop, 1 if the session could not
        be started.
    """
    settings = settings or AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("trader.main")

    exchange_client = BinanceClient(settings.exchange)

    if not settings.exchange.api_key.get_secret_value():
        logger.warning(
            "no_api_keys_configured",
            mode=settings.trading.mode,
            note="Market data will work. Live orders will be rejected.",
        )

    source = ExchangeCandleSource(
        exchange_client,
        KlineSubscriber(settings.exchange.ws_base_url),
        history_limit=settings.indicator.history_limit,
    )
    session = TradingSession(settings, source, _build_executor(settings, exchange_client))
    _setup_signal_handlers(session)

    try:
        await exchange_client.connect()
        await session.run()
    except (ConnectivityError, ccxt.async_support.BaseError):
        logger.error("session_start_failed", exc_info=True)
        return 1
    finally:
        await exchange_client.close()
        logger.info("trader_stopped")
    return 0


def main() -> None:
    """Synchronous entry point."""
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
