"""Lockstep pairing of two independently produced streams.

Each step requests exactly one item from both sides and waits for both
before yielding the pair, so neither side can run ahead. The pairing ends
as soon as either side is exhausted; a request still pending on the other
side is cancelled.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import TypeVar

from trader.logging import get_logger
from trader.models import Reading

logger = get_logger(__name__)

L = TypeVar("L")
R = TypeVar("R")

_EXHAUSTED = object()


async def _next_or_exhausted(stream: AsyncIterator) -> object:
    try:
        return await anext(stream)
    except StopAsyncIteration:
        return _EXHAUSTED


async def lockstep(
    left: AsyncIterator[L], right: AsyncIterator[R]
) -> AsyncIterator[tuple[L, R]]:
    """Yield (left_i, right_i) pairs until either stream ends."""
    while True:
        steps = [
            asyncio.ensure_future(_next_or_exhausted(left)),
            asyncio.ensure_future(_next_or_exhausted(right)),
        ]
        try:
            pending = set(steps)
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                if any(step.result() is _EXHAUSTED for step in done):
                    return
        finally:
            unfinished = [step for step in steps if not step.done()]
            for step in unfinished:
                step.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)

        yield steps[0].result(), steps[1].result()  # type: ignore[misc]


async def combine_readings(
    left: AsyncIterator[Reading | None],
    right: AsyncIterator[Reading | None],
    combine: Callable[[Reading, Reading], Reading],
    indicator: str,
) -> AsyncIterator[Reading | None]:
    """Pointwise-combine two indicator streams paired in lockstep.

    Yields None (not ready) when either reading is absent, or when the two
    readings belong to different candles.
    """
    async for first, second in lockstep(left, right):
        if first is None or second is None:
            yield None
            continue
        if first.timestamp != second.timestamp:
            logger.warning(
                "misaligned_readings",
                indicator=indicator,
                left=first.timestamp.isoformat(),
                right=second.timestamp.isoformat(),
            )
            yield None
            continue
        yield combine(first, second)
