"""Trading session -- wires the indicator pipeline to an executor.

One session trades one symbol/interval:
  1. FEED: build a BroadcastFeed (one fetch, one socket, four subscribers)
     or a DirectFeed (one fetch and socket per EMA engine).
  2. INDICATORS: open the RSI and MACD streams. Connectivity failures
     surface here, before any candle is processed.
  3. SIGNALS: pair RSI and MACD in lockstep through the state machine.
  4. EXECUTE: hand every intent to the executor, one at a time.

The session ends when the live feed ends or stop() is called. Every feed,
stream and producer task is released on the way out.
"""

from __future__ import annotations

import asyncio

from trader.config import AppSettings
from trader.execution.executor import Executor
from trader.indicators.macd import open_macd
from trader.indicators.rsi import open_rsi
from trader.logging import bind_session, get_logger
from trader.market_data.candle_source import CandleSource
from trader.market_data.feed import BroadcastFeed, CandleFeed, DirectFeed
from trader.models import OrderResult
from trader.strategy.state_machine import SignalStateMachine, signal_intents

logger = get_logger(__name__)

# gains + losses for RSI, fast + slow for MACD
_STREAMS_PER_SESSION = 4


class TradingSession:
    """Runs the MACD/RSI strategy for the configured pair until stopped.

    Args:
        settings: Application-wide settings.
        source: Historical and live candle provider.
        executor: Paper or live executor receiving trade intents.
    """

    def __init__(
        self,
        settings: AppSettings,
        source: CandleSource,
        executor: Executor,
    ) -> None:
        self._settings = settings
        self._source = source
        self._executor = executor
        self._machine = SignalStateMachine(
            rsi_buy=settings.trading.rsi_buy,
            rsi_sell=settings.trading.rsi_sell,
            confirmations_required=settings.trading.confirmations_required,
        )
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._stopping = False
        self._results: list[OrderResult] = []

    @property
    def machine(self) -> SignalStateMachine:
        return self._machine

    @property
    def results(self) -> list[OrderResult]:
        """Orders filled during this session."""
        return list(self._results)

    def build_feed(self) -> CandleFeed:
        trading = self._settings.trading
        indicator = self._settings.indicator
        if indicator.fanout:
            return BroadcastFeed(
                self._source,
                trading.symbol,
                trading.interval,
                subscribers=_STREAMS_PER_SESSION,
                queue_capacity=indicator.queue_capacity,
            )
        return DirectFeed(
            self._source,
            trading.symbol,
            trading.interval,
            queue_capacity=indicator.queue_capacity,
        )

    async def run(self) -> None:
        """Process candles until the feed ends or stop() is called.

        Raises:
            ConnectivityError: If the candle streams cannot be opened.
        """
        trading = self._settings.trading
        indicator = self._settings.indicator
        bind_session(trading.symbol, trading.interval)
        if self._stopping:
            # stop() arrived before the pipeline was built
            logger.info("session_stopped", orders=len(self._results))
            return
        self._task = asyncio.current_task()

        logger.info(
            "session_starting",
            mode=trading.mode,
            rsi_buy=str(trading.rsi_buy),
            rsi_sell=str(trading.rsi_sell),
            fanout=indicator.fanout,
        )

        feed = self.build_feed()
        try:
            rsi = await open_rsi(feed, indicator.rsi_window, indicator.rsi_epsilon)
            macd = await open_macd(feed, indicator.macd_fast, indicator.macd_slow)
            intents = signal_intents(rsi, macd, self._machine)
            try:
                async for intent in intents:
                    result = await self._executor.execute(intent)
                    if result is not None:
                        self._results.append(result)
            finally:
                await intents.aclose()
                await rsi.aclose()
                await macd.aclose()
        except asyncio.CancelledError:
            if not self._stopping:
                raise
        finally:
            await feed.close()
            self._task = None

        logger.info("session_stopped", orders=len(self._results))

    async def stop(self) -> None:
        """Stop the session, or make a later run() return at once.

        Intents already handed out are not retried.
        """
        logger.info("session_stopping")
        self._stopping = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
