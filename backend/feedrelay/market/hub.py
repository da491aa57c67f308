"""Fan-out of cached state and live updates to downstream subscribers."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from .cache import MarketStateCache
from .models import CANDLESTICK_EVENT, ORDER_BOOK_EVENT, TICKER_EVENT

logger = logging.getLogger(__name__)

SendFn = Callable[[str], Awaitable[None]]
CloseFn = Callable[[], Awaitable[None]]


def encode_event(event: str, data: Any) -> str:
    """Serialize one server-to-client message."""
    return json.dumps({"event": event, "data": data})


@dataclass(eq=False)
class _Subscriber:
    subscriber_id: str
    send: SendFn
    queue: asyncio.Queue
    close: CloseFn | None = None
    task: asyncio.Task | None = field(default=None)


class BroadcastHub:
    """Registry of connected subscribers with isolated, ordered delivery.

    Each subscriber owns a bounded queue drained by its own delivery task.
    ``broadcast_update`` only enqueues, so a slow or dead subscriber never
    stalls the producer or the other subscribers, and every subscriber sees
    updates in the order they were produced.
    """

    def __init__(self, cache: MarketStateCache, queue_size: int = 256) -> None:
        self._cache = cache
        self._queue_size = queue_size
        self._subscribers: dict[str, _Subscriber] = {}

    def on_join(self, subscriber_id: str, send: SendFn, close: CloseFn | None = None) -> None:
        """Register a subscriber and queue the current cache contents for it.

        ``close`` is awaited if delivery to this subscriber fails, so the
        transport does not stay open after the hub has dropped it.
        Must run on the event loop. Registration and the initial cache read
        happen with no suspension point in between, so no update can fall
        between the join snapshot and the first relayed update.
        """
        if subscriber_id in self._subscribers:
            logger.warning("Subscriber %s already registered", subscriber_id)
            return

        sub = _Subscriber(subscriber_id, send, asyncio.Queue(maxsize=self._queue_size), close)
        self._subscribers[subscriber_id] = sub

        state = self._cache.read()
        if state.candles:
            self._offer(sub, encode_event(CANDLESTICK_EVENT, [c.to_dict() for c in state.candles]))
        else:
            logger.info("Candlestick data not available yet for %s; will send when fetched", subscriber_id)
        self._offer(sub, encode_event(ORDER_BOOK_EVENT, state.order_book.to_dict()))
        if state.ticker is not None:
            self._offer(sub, encode_event(TICKER_EVENT, state.ticker))

        sub.task = asyncio.create_task(self._deliver(sub), name=f"subscriber-{subscriber_id}")
        logger.info("Subscriber %s joined (%d connected)", subscriber_id, len(self._subscribers))

    def on_leave(self, subscriber_id: str) -> None:
        sub = self._subscribers.pop(subscriber_id, None)
        if sub is None:
            return
        if sub.task is not None:
            sub.task.cancel()
        logger.info("Subscriber %s left (%d connected)", subscriber_id, len(self._subscribers))

    def broadcast_update(self, event: str, data: Any) -> None:
        """Queue one update for every registered subscriber. Never raises."""
        message = encode_event(event, data)
        for sub in list(self._subscribers.values()):
            self._offer(sub, message)

    async def flush(self) -> None:
        """Wait until every registered subscriber has drained its queue."""
        await asyncio.gather(*(sub.queue.join() for sub in list(self._subscribers.values())))

    async def close(self) -> None:
        """Drop all subscribers and wait for their delivery tasks to end."""
        subs = list(self._subscribers.values())
        self._subscribers.clear()
        for sub in subs:
            if sub.task is not None:
                sub.task.cancel()
        await asyncio.gather(*(sub.task for sub in subs if sub.task is not None), return_exceptions=True)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber_id: str) -> bool:
        return subscriber_id in self._subscribers

    # --- Internal ---

    def _offer(self, sub: _Subscriber, message: str) -> None:
        try:
            sub.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Subscriber %s is falling behind; dropping message", sub.subscriber_id)

    async def _deliver(self, sub: _Subscriber) -> None:
        while True:
            message = await sub.queue.get()
            try:
                await sub.send(message)
            except Exception as e:
                logger.warning("Delivery to subscriber %s failed, dropping it: %s", sub.subscriber_id, e)
                self._discard(sub)
                break
            finally:
                sub.queue.task_done()
        if sub.close is not None:
            try:
                await sub.close()
            except Exception as e:
                logger.debug("Closing subscriber %s failed: %s", sub.subscriber_id, e)

    def _discard(self, sub: _Subscriber) -> None:
        if self._subscribers.get(sub.subscriber_id) is sub:
            del self._subscribers[sub.subscriber_id]
        # Release anything still queued so flush() never waits on a dead subscriber.
        while True:
            try:
                sub.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            sub.queue.task_done()
