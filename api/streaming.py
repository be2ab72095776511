"""SSE bridge: synchronous store notifications → per-client async queues."""

import asyncio
import logging
import threading
from typing import AsyncIterator, Callable, Optional

from tracekit.events import StoreEvent, snapshot_message
from tracekit.store import SessionStore

logger = logging.getLogger("tracelens")


class StoreEventChannel:
    """Event channel between one SessionStore and its stream clients.

    Each client gets a bounded asyncio.Queue backed by its own store
    subscription. Store listeners run synchronously in whatever thread
    mutated the store, so messages are handed to the loop with
    ``call_soon_threadsafe``.

    A client whose queue fills up is dropped: its stream ends and it has to
    reconnect for a fresh snapshot. Other clients are unaffected.

    Usage:
        channel = StoreEventChannel(store, loop)
        queue, snapshot = channel.subscribe()
        ...
        channel.unsubscribe(queue)
    """

    def __init__(self, store: SessionStore, loop: asyncio.AbstractEventLoop,
                 queue_size: int = 1000):
        self._store = store
        self._loop = loop
        self._queue_size = queue_size
        self._subscribers: dict[asyncio.Queue, Callable[[], None]] = {}
        self._lock = threading.Lock()

    def subscribe(self) -> tuple[asyncio.Queue, dict]:
        """Register a client. Returns its queue and the ``init`` snapshot message.

        The snapshot and the store subscription are taken atomically, so
        each session reaches the client exactly once.
        """
        q: asyncio.Queue[Optional[dict]] = asyncio.Queue(maxsize=self._queue_size)

        def listener(event: StoreEvent) -> None:
            self._loop.call_soon_threadsafe(self._offer, q, event.to_message())

        sessions, unsubscribe = self._store.subscribe_with_snapshot(listener)
        with self._lock:
            self._subscribers[q] = unsubscribe
        return q, snapshot_message(sessions)

    def unsubscribe(self, q: asyncio.Queue) -> None:
        with self._lock:
            unsubscribe = self._subscribers.pop(q, None)
        if unsubscribe is not None:
            unsubscribe()

    def _offer(self, q: asyncio.Queue, message: dict) -> None:
        if q not in self._subscribers:
            return
        try:
            q.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("[Stream] Client fell behind; closing its stream")
            self.unsubscribe(q)
            _end_stream(q)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def close(self) -> None:
        """End every client stream and release their store subscriptions."""
        with self._lock:
            subscribers = list(self._subscribers.items())
            self._subscribers.clear()
        for q, unsubscribe in subscribers:
            unsubscribe()
            self._loop.call_soon_threadsafe(_end_stream, q)


def _end_stream(q: asyncio.Queue) -> None:
    """Discard anything pending and queue the end-of-stream sentinel."""
    while not q.empty():
        q.get_nowait()
    q.put_nowait(None)


async def stream_messages(channel: StoreEventChannel) -> AsyncIterator[dict]:
    """Yield the ``init`` snapshot, then store events until the channel ends the stream.

    The client's subscription is released when the generator is closed,
    which is what happens when the HTTP client disconnects.
    """
    queue, snapshot = channel.subscribe()
    try:
        yield snapshot
        while True:
            message = await queue.get()
            if message is None:
                break
            yield message
    finally:
        channel.unsubscribe(queue)
