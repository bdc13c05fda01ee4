"""Unit tests for the bounded task runner."""

import asyncio
from collections import Counter

import pytest

from dndcrawler.crawler import TaskRunner
from dndcrawler.exceptions import ItemExhaustedError
from dndcrawler.protocols import DetailRecord, ItemReference


def make_references(count):
    return [ItemReference(f"/spells/x/spell--{i}/") for i in range(1, count + 1)]


class TrackingFetch:
    """Fake fetch that records concurrency and per-reference calls."""

    def __init__(self, failures=None, delay=0.001):
        self.failures = dict(failures or {})
        self.delay = delay
        self.calls = Counter()
        self.in_flight = 0
        self.peak = 0

    async def __call__(self, reference):
        self.calls[reference.item_id] += 1
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            remaining = self.failures.get(reference.item_id, 0)
            if remaining == -1:
                raise RuntimeError(f"spell {reference.item_id} is broken")
            if remaining > 0:
                self.failures[reference.item_id] = remaining - 1
                raise RuntimeError(f"spell {reference.item_id} flaked")
            return DetailRecord(id=reference.item_id, name=f"Spell {reference.item_id}")
        finally:
            self.in_flight -= 1


class TestTaskRunner:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrency", [1, 2, 4, 8])
    async def test_concurrency_is_bounded(self, concurrency):
        fetch = TrackingFetch()
        result = await TaskRunner(fetch, concurrency=concurrency, retry_limit=2).run(make_references(20))

        assert len(result) == 20
        assert 1 <= fetch.peak <= concurrency

    @pytest.mark.asyncio
    async def test_concurrency_is_used(self):
        fetch = TrackingFetch(delay=0.01)
        await TaskRunner(fetch, concurrency=4, retry_limit=1).run(make_references(12))
        assert fetch.peak == 4

    @pytest.mark.asyncio
    async def test_every_reference_fetched_exactly_once(self):
        fetch = TrackingFetch()
        references = make_references(15)

        result = await TaskRunner(fetch, concurrency=3, retry_limit=2).run(references)

        assert set(fetch.calls) == {reference.item_id for reference in references}
        assert all(count == 1 for count in fetch.calls.values())
        assert sorted(record.id for record in result) == sorted(r.item_id for r in references)
        assert result.total == 15

    @pytest.mark.asyncio
    async def test_failed_fetch_is_retried(self):
        fetch = TrackingFetch(failures={"3": 2})

        result = await TaskRunner(fetch, concurrency=2, retry_limit=3).run(make_references(5))

        assert len(result) == 5
        assert fetch.calls["3"] == 3

    @pytest.mark.asyncio
    async def test_exhausted_item_fails_the_run(self):
        fetch = TrackingFetch(failures={"2": -1})

        with pytest.raises(ItemExhaustedError) as exc_info:
            await TaskRunner(fetch, concurrency=2, retry_limit=3).run(make_references(6))

        assert exc_info.value.reference == ItemReference("/spells/x/spell--2/")
        assert exc_info.value.attempts == 3
        assert "broken" in str(exc_info.value.last_error)
        assert fetch.calls["2"] == 3

    @pytest.mark.asyncio
    async def test_no_work_continues_after_failure(self):
        fetch = TrackingFetch(failures={"1": -1})

        with pytest.raises(ItemExhaustedError):
            await TaskRunner(fetch, concurrency=1, retry_limit=1).run(make_references(10))

        # The single worker may already have picked up the next item; it is cancelled.
        assert sum(fetch.calls.values()) <= 2
        await asyncio.sleep(0.02)
        assert fetch.in_flight == 0
        assert sum(fetch.calls.values()) <= 2

    @pytest.mark.asyncio
    async def test_on_record_reports_progress(self):
        progress = []

        await TaskRunner(TrackingFetch(), concurrency=3, retry_limit=1).run(
            make_references(4), on_record=lambda record, count, total: progress.append((count, total))
        )

        assert progress == [(1, 4), (2, 4), (3, 4), (4, 4)]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        fetch = TrackingFetch()
        result = await TaskRunner(fetch, concurrency=4).run([])
        assert len(result) == 0
        assert result.total == 0
        assert not fetch.calls

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValueError):
            TaskRunner(TrackingFetch(), concurrency=0)
