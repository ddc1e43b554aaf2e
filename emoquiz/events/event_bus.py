"""Fan-out of transcript events and evaluation results.

A speech source publishes on its own bus and the session controller reads
one subscription per listening window; the server publishes graded results
on a second bus that SSE clients subscribe to.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Generic, TypeVar

logger = logging.getLogger(__name__)

_DEFAULT_QUEUE_SIZE = 256

T = TypeVar("T")


class EventBus(Generic[T]):
    """Delivers every published item to every subscriber queue, in order.

    Publishing never waits on a consumer: a subscriber whose queue is full
    misses the item, and the miss is counted in ``dropped``.
    """

    def __init__(self, maxsize: int = _DEFAULT_QUEUE_SIZE) -> None:
        self._queues: list[asyncio.Queue[T]] = []
        self._lock = asyncio.Lock()
        self._maxsize = maxsize
        self._dropped = 0

    async def emit(self, item: T) -> None:
        async with self._lock:
            queues = tuple(self._queues)

        for queue in queues:
            try:
                queue.put_nowait(item)
            except asyncio.QueueFull:
                self._dropped += 1
                logger.warning(
                    "%s not delivered: subscriber queue full (%d dropped so far)",
                    type(item).__name__,
                    self._dropped,
                )

    async def subscribe(self) -> asyncio.Queue[T]:
        """Register and return a new subscriber queue."""
        queue: asyncio.Queue[T] = asyncio.Queue(maxsize=self._maxsize)
        async with self._lock:
            self._queues.append(queue)
            count = len(self._queues)
        logger.debug("Subscriber added (%d total)", count)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue[T]) -> None:
        """Stop delivering to *queue*.  Unknown queues are ignored."""
        async with self._lock:
            if queue not in self._queues:
                return
            self._queues.remove(queue)
            count = len(self._queues)
        logger.debug("Subscriber removed (%d remaining)", count)

    @asynccontextmanager
    async def subscription(self) -> AsyncIterator[asyncio.Queue[T]]:
        """Subscribe for the duration of an ``async with`` block."""
        queue = await self.subscribe()
        try:
            yield queue
        finally:
            await self.unsubscribe(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    @property
    def dropped(self) -> int:
        """Items that could not be delivered to a full subscriber queue."""
        return self._dropped
