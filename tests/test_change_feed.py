"""Tests for the change feed and live queries."""

import asyncio

import pytest

from skyfuel.services.change_feed import Change, ChangeFeed, LiveQuery


class CountingFetch:
    """Fetch stub returning how many times it has been called."""

    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.calls


def _always(change: Change) -> bool:
    return True


@pytest.mark.unit
class TestChange:

    def test_touches_listed_battery(self):
        change = Change(frozenset({1, 2}))
        assert change.touches_battery(1)
        assert not change.touches_battery(3)

    def test_bulk_touches_everything(self):
        assert Change(bulk=True).touches_battery(42)


@pytest.mark.unit
@pytest.mark.asyncio
class TestLiveQuery:

    async def test_first_emission_is_current_result(self):
        feed = ChangeFeed()
        fetch = CountingFetch()
        query = LiveQuery(feed, fetch, _always)

        assert await query.__anext__() == 1
        assert feed.subscriber_count == 1
        query.close()

    async def test_pending_changes_are_coalesced(self):
        feed = ChangeFeed()
        fetch = CountingFetch()
        query = LiveQuery(feed, fetch, _always)
        await query.__anext__()

        for battery_id in (1, 2, 3):
            feed.publish(Change(frozenset({battery_id})))

        assert await asyncio.wait_for(query.__anext__(), 1) == 2
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(query.__anext__(), 0.05)
        assert fetch.calls == 2
        query.close()

    async def test_irrelevant_changes_are_ignored(self):
        feed = ChangeFeed()
        fetch = CountingFetch()
        query = LiveQuery(feed, fetch, lambda change: change.touches_battery(7))
        await query.__anext__()

        feed.publish(Change(frozenset({8})))
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(query.__anext__(), 0.05)

        feed.publish(Change(frozenset({7})))
        assert await asyncio.wait_for(query.__anext__(), 1) == 2
        query.close()

    async def test_close_wakes_pending_iteration(self):
        feed = ChangeFeed()
        query = LiveQuery(feed, CountingFetch(), _always)
        await query.__anext__()

        pending = asyncio.ensure_future(query.__anext__())
        await asyncio.sleep(0)
        query.close()

        with pytest.raises(StopAsyncIteration):
            await asyncio.wait_for(pending, 1)
        assert query.closed
        assert feed.subscriber_count == 0

    async def test_no_emissions_after_close(self):
        feed = ChangeFeed()
        fetch = CountingFetch()
        async with LiveQuery(feed, fetch, _always) as query:
            results = []
            async for value in query:
                results.append(value)
                if len(results) == 2:
                    query.close()
                else:
                    feed.publish(Change(frozenset({1})))

        feed.publish(Change(frozenset({1})))
        assert results == [1, 2]
        assert fetch.calls == 2
