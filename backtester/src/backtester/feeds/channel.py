"""
Event channel between a feed (producer) and a run loop (consumer).

The channel is a small bounded FIFO buffer with a timeframe attached.
The producer ``await``s :meth:`EventChannel.send`, which suspends while
the buffer is full; the consumer ``await``s :meth:`EventChannel.receive`,
which suspends while the buffer is empty and the channel is open.  A
small capacity keeps the producer close to the consumer and provides
backpressure.

Events before the timeframe are dropped.  The first event at or after
the end of the timeframe marks the end of the stream and closes the
channel.

Closing is not an error.  :meth:`EventChannel.receive` returns either a
:class:`Received` wrapper or the :data:`CLOSED` sentinel, and iterating
the channel with ``async for`` simply stops once it is closed and
drained.  Events already buffered when the channel is closed are still
delivered.

Usage::

    async with play_feed(feed, timeframe) as channel:
        async for event in channel:
            ...

:func:`play_feed` takes care of starting the producer task and of
stopping it again on every exit path of the consumer, including
``break`` and exceptions.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Deque, Optional, Union

from ..common.errors import FeedError
from ..common.timeframe import Timeframe
from ..config import get_settings
from .event import Event

if TYPE_CHECKING:  # pragma: no cover
    from .feed import Feed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Received:
    """Successful result of :meth:`EventChannel.receive`."""

    event: Event


class _Closed:
    """Result of :meth:`EventChannel.receive` once the channel is closed and drained."""

    _instance: Optional["_Closed"] = None

    def __new__(cls) -> "_Closed":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLOSED"

    def __bool__(self) -> bool:
        return False


CLOSED = _Closed()

ReceiveResult = Union[Received, _Closed]


class EventChannel:
    """Bounded, closeable FIFO of events restricted to a timeframe.

    Parameters
    ----------
    capacity : int, optional
        Maximum number of buffered events before :meth:`send` suspends;
        defaults to ``BACKTEST_CHANNEL_CAPACITY``.
    timeframe : Timeframe
        Only events inside this half-open interval are delivered.

    The channel is meant for one producer and one consumer running on
    the same event loop.
    """

    def __init__(self, capacity: Optional[int] = None, timeframe: Timeframe = Timeframe.INFINITE) -> None:
        if capacity is None:
            capacity = get_settings().channel_capacity
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.timeframe = timeframe
        self._buffer: Deque[Event] = deque()
        self._closed = False
        self._not_empty = asyncio.Event()
        self._not_full = asyncio.Event()
        self._not_full.set()

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._buffer)

    def _accepts(self, event: Event) -> bool:
        """Apply the timeframe; closes the channel on end of stream."""
        if self._closed:
            return False
        if event.time >= self.timeframe.end:
            self.close()
            return False
        return event.time >= self.timeframe.start

    async def send(self, event: Event) -> None:
        """Add an event, waiting for space when the buffer is full.

        Returns without queueing when the event is outside the timeframe
        or the channel is (or becomes) closed.
        """
        if not self._accepts(event):
            return
        while len(self._buffer) >= self.capacity and not self._closed:
            self._not_full.clear()
            await self._not_full.wait()
        if self._closed:
            return
        self._buffer.append(event)
        self._not_empty.set()

    def offer(self, event: Event) -> None:
        """Add an event without waiting, dropping the oldest one when full.

        Intended for live feeds that cannot be slowed down by a consumer.
        """
        if not self._accepts(event):
            return
        if len(self._buffer) >= self.capacity:
            dropped = self._buffer.popleft()
            logger.warning("Event channel full, dropping event at %s", dropped.time.isoformat())
        self._buffer.append(event)
        self._not_empty.set()

    async def receive(self) -> ReceiveResult:
        """Wait for the next event.

        Returns:
            ``Received(event)`` for the next buffered event, or
            :data:`CLOSED` once the channel is closed and drained.
        """
        while not self._buffer:
            if self._closed:
                return CLOSED
            self._not_empty.clear()
            await self._not_empty.wait()
        event = self._buffer.popleft()
        self._not_full.set()
        return Received(event)

    def close(self) -> None:
        """Close the channel and wake up any waiting sender or receiver.

        Calling ``close`` more than once has no further effect.
        """
        if self._closed:
            return
        self._closed = True
        self._not_empty.set()
        self._not_full.set()

    async def __aiter__(self) -> AsyncIterator[Event]:
        while True:
            result = await self.receive()
            if not isinstance(result, Received):
                return
            yield result.event


async def _produce(feed: "Feed", channel: EventChannel) -> None:
    try:
        await feed.play(channel)
    finally:
        channel.close()


@contextlib.asynccontextmanager
async def play_feed(
    feed: "Feed",
    timeframe: Timeframe = Timeframe.INFINITE,
    capacity: Optional[int] = None,
) -> AsyncIterator[EventChannel]:
    """Play ``feed`` into a fresh channel for the duration of the block.

    On exit the channel is closed and the producer task is cancelled if
    it is still running.  If the feed itself failed and the block
    finished normally, the failure is re-raised as
    :class:`~backtester.common.errors.FeedError`.
    """
    channel = EventChannel(capacity=capacity, timeframe=timeframe)
    producer = asyncio.create_task(_produce(feed, channel))
    error: Optional[BaseException] = None
    try:
        yield channel
    finally:
        channel.close()
        if not producer.done():
            producer.cancel()
        await asyncio.wait({producer})
        if not producer.cancelled():
            error = producer.exception()
            if error is not None:
                logger.error("Feed %s failed: %s", type(feed).__name__, error)
    if error is not None:
        raise FeedError(f"feed {type(feed).__name__} failed") from error
