"""
SkyFuel Battery Ledger - Change Feed and Live Queries
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-09): Initial in-process change feed; LiveQuery re-emits a
                      full snapshot after every committed write it cares about

The store publishes one Change per committed transaction. Each LiveQuery
registered on the feed decides whether the change affects it, and if so
re-runs its fetch on the next iteration. Bursts of changes between two
iterations are coalesced into one emission.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, FrozenSet, Generic, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


@dataclass(frozen=True)
class Change:
    """What a committed write touched"""
    battery_ids: FrozenSet[int] = frozenset()
    fleet: bool = True          # battery rows changed, not only ledger rows
    bulk: bool = False          # import/replace: assume everything changed

    def touches_battery(self, battery_id: int) -> bool:
        return self.bulk or battery_id in self.battery_ids


class ChangeFeed:
    """Fan-out of committed changes to live queries"""

    def __init__(self):
        self._subscribers: Set["LiveQuery"] = set()

    def subscribe(self, query: "LiveQuery"):
        self._subscribers.add(query)
        logger.debug(f"LiveQuery {query.name} subscribed. Total: {len(self._subscribers)}")

    def unsubscribe(self, query: "LiveQuery"):
        self._subscribers.discard(query)
        logger.debug(f"LiveQuery {query.name} unsubscribed. Total: {len(self._subscribers)}")

    def publish(self, change: Change):
        for query in list(self._subscribers):
            query._notify(change)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class LiveQuery(Generic[T]):
    """
    Cancellable async-iterable subscription.

    The first iteration yields the current result; each later iteration
    waits for a relevant change and yields the refreshed result. close()
    stops further emissions and wakes a pending iteration.
    """

    def __init__(self, feed: ChangeFeed, fetch: Callable[[], Awaitable[T]],
                 is_relevant: Callable[[Change], bool], name: str = "query"):
        self.name = name
        self._feed = feed
        self._fetch = fetch
        self._is_relevant = is_relevant
        self._queue: asyncio.Queue = asyncio.Queue()
        self._primed = False
        self._closed = False
        feed.subscribe(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def _notify(self, change: Change):
        if not self._closed and self._is_relevant(change):
            self._queue.put_nowait(change)

    def _drain(self) -> bool:
        """Discard queued changes; True if a close marker was among them"""
        saw_close = False
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return saw_close
            if item is _CLOSED:
                saw_close = True

    async def current(self) -> T:
        """One-shot read of the current result without consuming a change"""
        return await self._fetch()

    def __aiter__(self):
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        if not self._primed:
            self._primed = True
            self._drain()
            return await self._fetch()

        item = await self._queue.get()
        if item is _CLOSED or self._drain() or self._closed:
            raise StopAsyncIteration
        return await self._fetch()

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._feed.unsubscribe(self)
        self._queue.put_nowait(_CLOSED)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()
