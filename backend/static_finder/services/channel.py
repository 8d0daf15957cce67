import asyncio
from typing import AsyncIterator, Generic, TypeVar

T = TypeVar("T")

_CLOSED = object()

# about two full search pages of results before the producer waits
DEFAULT_CAPACITY = 256


class ChannelClosed(Exception):
    """Raised on ``send`` after the channel was closed by either side."""


class EventChannel(Generic[T]):
    """Single-producer / single-consumer bounded channel.

    Closing is how cancellation travels: the consumer closes when it goes away,
    the producer's next ``send`` raises ``ChannelClosed`` and ``closed_event``
    lets long-running helpers (the search pager) stop early. A producer blocked
    on a full channel is released by ``close`` as well.
    """

    def __init__(self, maxsize: int = DEFAULT_CAPACITY) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed_event = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self.closed_event.is_set()

    async def send(self, item: T) -> None:
        if self.closed:
            raise ChannelClosed()
        try:
            self._queue.put_nowait(item)
            return
        except asyncio.QueueFull:
            pass

        put = asyncio.ensure_future(self._queue.put(item))
        closed = asyncio.ensure_future(self.closed_event.wait())
        try:
            await asyncio.wait({put, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (put, closed):
                if not task.done():
                    task.cancel()
        if not (put.done() and not put.cancelled()):
            raise ChannelClosed()

    def close(self) -> None:
        if self.closed:
            return
        self.closed_event.set()
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # the consumer stops once it has drained the queue
            pass

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            if self.closed and self._queue.empty():
                return
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
