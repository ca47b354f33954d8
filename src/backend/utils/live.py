# src/backend/utils/live.py
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, Optional, Set

from src.backend.schemas.document import WriteEvent

logger = logging.getLogger(__name__)


class Subscription:
    """
    A live view of one collection's writes.

    Registered on creation; ``close()`` (or leaving ``async with``) tears it
    down. Slow consumers lose events once their queue is full.
    """

    def __init__(self, feed: "ChangeFeed", collection: str, maxsize: int) -> None:
        self.collection = collection
        self._feed = feed
        self._queue: asyncio.Queue[WriteEvent] = asyncio.Queue(maxsize=maxsize)
        self.closed = False
        feed._add(self)

    def offer(self, event: WriteEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Live subscriber on %r is lagging; dropped %s/%s", self.collection, event.collection, event.doc_id)

    async def get(self, timeout: Optional[float] = None) -> WriteEvent:
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._feed._remove(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> WriteEvent:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()


class ChangeFeed:
    def __init__(self, maxsize: int = 100) -> None:
        self._maxsize = maxsize
        self._subs: Dict[str, Set[Subscription]] = defaultdict(set)

    def _add(self, sub: Subscription) -> None:
        self._subs[sub.collection].add(sub)
        logger.debug("live: +1 subscriber on %r (%d)", sub.collection, len(self._subs[sub.collection]))

    def _remove(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.collection)
        if subs is not None:
            subs.discard(sub)
            if not subs:
                self._subs.pop(sub.collection, None)
        logger.debug("live: -1 subscriber on %r", sub.collection)

    def subscribe(self, collection: str) -> Subscription:
        return Subscription(self, collection, self._maxsize)

    def subscriber_count(self, collection: str) -> int:
        return len(self._subs.get(collection, ()))

    def publish(self, event: WriteEvent) -> None:
        for sub in list(self._subs.get(event.collection, ())):
            sub.offer(event)


feed = ChangeFeed()
