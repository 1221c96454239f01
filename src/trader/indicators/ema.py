"""Incremental Exponential Moving Average over a candle stream.

Three phases:
    1. Warm-up: collect the first N closes, emitting None for each.
    2. Seed: the N-th close completes the window; the simple average of the
       N closes becomes the running EMA. The seed itself is not emitted.
    3. Steady state: EMA_t = close_t * k + EMA_{t-1} * (1 - k), k = 2 / (N + 1).

The engine emits exactly one item per input candle, so downstream consumers
can pair indicator streams position by position.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import AsyncIterable, AsyncIterator
from decimal import Decimal

from trader.models import Candle, Reading


class EmaEngine:
    """Stateful EMA over closes, holding at most N values of history.

    Args:
        window: EMA window N, at least 1.

    Raises:
        ValueError: If window is smaller than 1.
    """

    def __init__(self, window: int) -> None:
        if window < 1:
            raise ValueError(f"EMA window must be positive, got {window}")
        self.window = window
        self._k = Decimal(2) / Decimal(window + 1)
        self._one_minus_k = Decimal(1) - self._k
        self._seed_window: list[Decimal] = []
        self._average: Decimal | None = None
        self.steps_seen = 0

    @property
    def smoothing(self) -> Decimal:
        return self._k

    @property
    def value(self) -> Decimal | None:
        """Current running average, None until seeded."""
        return self._average

    def update(self, candle: Candle) -> Reading | None:
        """Consume one candle and return its reading, or None while warming up."""
        self.steps_seen += 1

        if self._average is None:
            self._seed_window.append(candle.close)
            if len(self._seed_window) == self.window:
                self._average = sum(self._seed_window, Decimal(0)) / Decimal(self.window)
                self._seed_window.clear()
            return None

        self._average = candle.close * self._k + self._average * self._one_minus_k
        return Reading(candle.timestamp, self._average, candle.origin)

    async def run(self, candles: AsyncIterable[Candle]) -> AsyncIterator[Reading | None]:
        """Yield update(candle) for every candle of the stream."""
        async for candle in candles:
            yield self.update(candle)


def ema_stream(candles: AsyncIterable[Candle], window: int) -> AsyncIterator[Reading | None]:
    """EMA readings for a candle stream with a fresh engine.

    The window is validated immediately, not on first iteration.
    """
    return EmaEngine(window).run(candles)
