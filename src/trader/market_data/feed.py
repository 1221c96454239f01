"""Candle feeds -- hand out independent candle streams for one symbol/interval.

Every EMA engine needs a private stream of candles. Two strategies:

- DirectFeed: each open() fetches history and opens its own live
  subscription, so each stream has its own producer task and connection.
- BroadcastFeed: one upstream unified stream is fanned out to a fixed
  number of subscribers. A pump task copies every candle into each
  subscriber's bounded queue, blocking on a full one. All subscribers see
  the same candle sequence with a single REST fetch and a single socket.
"""

import asyncio
from abc import ABC, abstractmethod

from trader.logging import get_logger
from trader.market_data.candle_source import CandleSource
from trader.market_data.candle_stream import (
    DEFAULT_QUEUE_CAPACITY,
    END_OF_STREAM,
    check_queue_capacity,
    CandleStream,
    UnifiedCandleStream,
    open_candle_stream,
)

logger = get_logger(__name__)


class CandleFeed(ABC):
    """Source of independent unified candle streams."""

    @abstractmethod
    async def open(self) -> CandleStream:
        """Return a new stream. The caller owns it and must aclose() it.

        Raises:
            ConnectivityError: If the historical batch cannot be fetched.
        """
        ...

    async def close(self) -> None:
        """Release feed-level resources. Streams are closed by their owners."""


class DirectFeed(CandleFeed):
    """Opens a fresh history fetch plus live subscription per stream.

    Opened streams are remembered so close() can stop producers whose
    consumers never started iterating.
    """

    def __init__(
        self,
        source: CandleSource,
        symbol: str,
        interval: str,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
    ) -> None:
        check_queue_capacity(queue_capacity)
        self._source = source
        self._symbol = symbol
        self._interval = interval
        self._queue_capacity = queue_capacity
        self._streams: list[CandleStream] = []

    async def open(self) -> CandleStream:
        stream = await open_candle_stream(
            self._source, self._symbol, self._interval, self._queue_capacity
        )
        self._streams.append(stream)
        return stream

    async def close(self) -> None:
        for stream in self._streams:
            await stream.aclose()
        self._streams.clear()


class BroadcastFeed(CandleFeed):
    """Fans one upstream unified stream out to ``subscribers`` streams.

    The upstream stream is opened by the first open() call; the pump starts
    once the last subscriber slot is taken, so no subscriber misses a
    candle. Closing a subscriber detaches its queue; closing the last one
    stops the pump and the upstream producer.

    Args:
        source: Candle source for the single upstream stream.
        symbol: Unified symbol, e.g. "BNB/USDT".
        interval: Kline interval, e.g. "1h".
        subscribers: Number of streams that will be opened.
        queue_capacity: Bound of the upstream and of each subscriber queue.
    """

    def __init__(
        self,
        source: CandleSource,
        symbol: str,
        interval: str,
        subscribers: int,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
    ) -> None:
        check_queue_capacity(queue_capacity)
        if subscribers < 1:
            raise ValueError(f"subscribers must be positive, got {subscribers}")
        self._source = source
        self._symbol = symbol
        self._interval = interval
        self._subscribers = subscribers
        self._queue_capacity = queue_capacity
        self._queues: list[asyncio.Queue] = []
        self._opened = 0
        self._upstream: UnifiedCandleStream | None = None
        self._pump: asyncio.Task | None = None  # type: ignore[type-arg]
        self._lock = asyncio.Lock()

    async def open(self) -> CandleStream:
        async with self._lock:
            if self._opened >= self._subscribers:
                raise RuntimeError(
                    f"BroadcastFeed has only {self._subscribers} subscriber slots"
                )
            if self._upstream is None:
                self._upstream = await open_candle_stream(
                    self._source, self._symbol, self._interval, self._queue_capacity
                )

            queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_capacity)
            self._queues.append(queue)
            self._opened += 1

            if self._opened == self._subscribers:
                self._pump = asyncio.create_task(
                    self._run_pump(), name=f"candle-broadcast-{self._symbol}"
                )
                logger.debug("candle_broadcast_started", subscribers=self._subscribers)

        async def detach() -> None:
            await self._detach(queue)

        return CandleStream(queue, on_close=detach)

    async def _run_pump(self) -> None:
        assert self._upstream is not None
        async for candle in self._upstream:
            for queue in list(self._queues):
                await queue.put(candle)
        for queue in list(self._queues):
            await queue.put(END_OF_STREAM)

    async def _detach(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)
        # Unblock a pump waiting on this queue's free slot.
        while not queue.empty():
            queue.get_nowait()

        if not self._queues and self._opened == self._subscribers:
            await self.close()

    async def close(self) -> None:
        """Stop the pump and release the upstream stream."""
        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass
        if self._upstream is not None:
            await self._upstream.aclose()
        logger.debug("candle_broadcast_closed")
