"""Unified candle stream -- history followed by the live feed, in one iterator.

The historical batch is replayed first (tagged HISTORICAL), then candles
arriving on the live subscription (tagged LIVE). The live subscription is
drained by a background producer task into a bounded asyncio.Queue: a full
queue blocks the producer (backpressure), nothing is dropped. When the
subscription ends or fails the producer logs, posts an end marker and
exits, which ends the stream. Closing the stream cancels the producer.

The exchange returns the still-forming candle as the last history row; it is
discarded so its closed form, which arrives on the live feed, is not counted
twice.
"""

import asyncio
from collections import deque
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import aclosing
from datetime import datetime

from trader.logging import get_logger
from trader.market_data.candle_source import CandleSource
from trader.models import Candle

logger = get_logger(__name__)

#: Queue item marking the end of the live segment.
END_OF_STREAM = object()

DEFAULT_QUEUE_CAPACITY = 100


def check_queue_capacity(queue_capacity: int) -> None:
    """Reject capacities asyncio.Queue would treat as unbounded."""
    if queue_capacity < 1:
        raise ValueError(f"queue_capacity must be positive, got {queue_capacity}")


class CandleStream:
    """Async iterator draining a bounded hand-off queue until the end marker.

    Args:
        queue: Queue shared with exactly one producer.
        on_close: Awaited once by aclose(), used to release the producer side.
    """

    def __init__(
        self,
        queue: asyncio.Queue,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._queue = queue
        self._on_close = on_close
        self._exhausted = False
        self._closed = False

    def __aiter__(self) -> "CandleStream":
        return self

    async def __anext__(self) -> Candle:
        return await self._next_queued()

    async def _next_queued(self) -> Candle:
        if self._exhausted or self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is END_OF_STREAM:
            self._exhausted = True
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        """Stop consuming and release the producer. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            await self._on_close()

    async def __aenter__(self) -> "CandleStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class UnifiedCandleStream(CandleStream):
    """History replay followed by the live queue, strictly ordered by time.

    A live candle that is not newer than the last candle yielded is dropped,
    so a feed replaying the seam candle cannot break ordering.
    """

    def __init__(
        self,
        history: list[Candle],
        queue: asyncio.Queue,
        producer: asyncio.Task,
    ) -> None:
        super().__init__(queue, on_close=self._stop_producer)
        self._history = deque(history)
        self._producer = producer
        self._last_timestamp: datetime | None = None

    @property
    def producer(self) -> asyncio.Task:
        return self._producer

    async def __anext__(self) -> Candle:
        if self._history and not self._closed:
            candle = self._history.popleft()
        else:
            candle = await self._next_queued()
            while self._last_timestamp is not None and candle.timestamp <= self._last_timestamp:
                logger.debug(
                    "stale_live_candle_dropped",
                    timestamp=candle.timestamp.isoformat(),
                    last=self._last_timestamp.isoformat(),
                )
                candle = await self._next_queued()
        self._last_timestamp = candle.timestamp
        return candle

    async def _stop_producer(self) -> None:
        if not self._producer.done():
            self._producer.cancel()
        try:
            await self._producer
        except asyncio.CancelledError:
            pass


async def _forward_live(
    live: AsyncGenerator[Candle, None],
    queue: asyncio.Queue,
    symbol: str,
    interval: str,
) -> None:
    """Producer task: move live candles into the hand-off queue."""
    forwarded = 0
    try:
        async with aclosing(live) as feed:
            async for candle in feed:
                await queue.put(candle)
                forwarded += 1
    except asyncio.CancelledError:
        logger.debug("live_feed_consumer_gone", symbol=symbol, interval=interval)
        raise
    except Exception:
        logger.warning(
            "live_feed_failed",
            symbol=symbol,
            interval=interval,
            forwarded=forwarded,
            exc_info=True,
        )

    logger.info("live_feed_ended", symbol=symbol, interval=interval, forwarded=forwarded)
    await queue.put(END_OF_STREAM)


async def open_candle_stream(
    source: CandleSource,
    symbol: str,
    interval: str,
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
) -> UnifiedCandleStream:
    """Fetch history, start the live producer and return the unified stream.

    Raises:
        ValueError: If queue_capacity is not positive.
        ConnectivityError: If the historical batch cannot be fetched. No
            producer task is started in that case.
    """
    check_queue_capacity(queue_capacity)
    history = await source.fetch_historical(symbol, interval)
    # Last row is the candle still forming on the exchange.
    closed_history = history[:-1]

    queue: asyncio.Queue = asyncio.Queue(maxsize=queue_capacity)
    producer = asyncio.create_task(
        _forward_live(source.subscribe_live(symbol, interval), queue, symbol, interval),
        name=f"live-feed-{symbol}-{interval}",
    )
    logger.info(
        "candle_stream_opened",
        symbol=symbol,
        interval=interval,
        historical=len(closed_history),
        queue_capacity=queue_capacity,
    )
    return UnifiedCandleStream(closed_history, queue, producer)
