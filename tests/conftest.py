"""Shared test fixtures for the MACD/RSI trader."""

import asyncio
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from trader.config import AppSettings, ExchangeSettings, IndicatorSettings, TradingSettings
from trader.exceptions import ConnectivityError
from trader.market_data.candle_source import CandleSource
from trader.models import Candle, Origin

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_candle(
    index: int,
    close: Decimal | int | str,
    open_: Decimal | int | str | None = None,
    origin: Origin = Origin.HISTORICAL,
) -> Candle:
    """Candle at BASE_TIME + index hours; open defaults to close."""
    close = Decimal(close)
    return Candle(
        timestamp=BASE_TIME + timedelta(hours=index),
        open=Decimal(open_) if open_ is not None else close,
        close=close,
        origin=origin,
    )


class FakeCandleSource(CandleSource):
    """In-memory CandleSource with scriptable failures.

    Args:
        history: Returned by fetch_historical (forming candle included last).
        live: Yielded by every subscribe_live call.
        fail_history: fetch_historical raises ConnectivityError.
        live_error: Raised by subscribe_live after the live candles.
        hold_open: subscribe_live never ends after the live candles.
    """

    def __init__(
        self,
        history: list[Candle],
        live: list[Candle] | None = None,
        fail_history: bool = False,
        live_error: Exception | None = None,
        hold_open: bool = False,
    ) -> None:
        self.history = history
        self.live = live or []
        self.fail_history = fail_history
        self.live_error = live_error
        self.hold_open = hold_open
        self.history_calls = 0
        self.live_calls = 0
        self.live_closed = 0

    async def fetch_historical(self, symbol: str, interval: str) -> list[Candle]:
        self.history_calls += 1
        if self.fail_history:
            raise ConnectivityError("history unavailable")
        return list(self.history)

    async def subscribe_live(self, symbol: str, interval: str) -> AsyncGenerator[Candle, None]:
        self.live_calls += 1
        try:
            for candle in self.live:
                yield candle
            if self.live_error is not None:
                raise self.live_error
            if self.hold_open:
                await asyncio.Event().wait()
        finally:
            self.live_closed += 1


@pytest.fixture
def candle_factory() -> Callable[..., Candle]:
    """Factory building candles spaced one hour apart."""
    return make_candle


@pytest.fixture
def source_factory() -> Callable[..., FakeCandleSource]:
    """Factory for FakeCandleSource instances."""
    return FakeCandleSource


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (paper mode, dummy API keys)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(
            api_key="test-api-key",  # type: ignore[arg-type]
            api_secret="test-api-secret",  # type: ignore[arg-type]
        ),
        trading=TradingSettings(mode="paper", symbol="BNB/USDT", interval="1h"),
        indicator=IndicatorSettings(),
    )
