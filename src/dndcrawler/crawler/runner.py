"""
Bounded task runner for detail fetches.

A fixed pool of workers pulls references from a queue, so no more than
``concurrency`` fetches are ever in flight. Workers report each outcome over a
second queue to a single coordinator, the ``run`` coroutine, which is the only
code that touches the ``CrawlResult``.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Union

import structlog

from dndcrawler.exceptions import ItemExhaustedError
from dndcrawler.protocols import CrawlResult, DetailRecord, ItemReference
from dndcrawler.recovery.retry import BoundedWithFailure

FetchFn = Callable[[ItemReference], Awaitable[DetailRecord]]
OnRecord = Callable[[DetailRecord, int, int], None]
Outcome = Union[DetailRecord, ItemExhaustedError]


class TaskRunner:
    """Runs ``fetch`` over every reference with bounded concurrency and retry."""

    def __init__(
        self,
        fetch: FetchFn,
        concurrency: int = 4,
        retry_limit: int = 10,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.fetch = fetch
        self.concurrency = concurrency
        self.policy = BoundedWithFailure(retry_limit)
        self.logger = (logger or structlog.get_logger(__name__)).bind(component="TaskRunner")

    async def run(self, references: Sequence[ItemReference], on_record: Optional[OnRecord] = None) -> CrawlResult:
        """
        Fetch every reference once and collect the records in completion order.

        ``on_record(record, count, total)`` is called by the coordinator after
        each record is appended. If any reference fails on every attempt, the
        remaining work is cancelled and ``ItemExhaustedError`` is raised; the
        records gathered so far are dropped.
        """
        result = CrawlResult(total=len(references))
        if not references:
            return result

        pending: asyncio.Queue[ItemReference] = asyncio.Queue()
        for reference in references:
            pending.put_nowait(reference)
        outcomes: asyncio.Queue[Outcome] = asyncio.Queue()

        num_workers = min(self.concurrency, len(references))
        workers: List[asyncio.Task[None]] = [
            asyncio.create_task(self._worker(f"worker-{i}", pending, outcomes)) for i in range(num_workers)
        ]
        self.logger.debug("Workers started", workers=num_workers, total=result.total)

        try:
            for _ in range(result.total):
                outcome = await outcomes.get()
                if isinstance(outcome, ItemExhaustedError):
                    self.logger.error(
                        "Giving up on item",
                        reference=outcome.reference.locator,
                        attempts=outcome.attempts,
                        error=str(outcome.last_error),
                    )
                    raise outcome
                count = result.append(outcome)
                if on_record is not None:
                    on_record(outcome, count, result.total)
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        return result

    async def _worker(
        self,
        worker_id: str,
        pending: asyncio.Queue[ItemReference],
        outcomes: asyncio.Queue[Outcome],
    ) -> None:
        while True:
            try:
                reference = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcomes.put_nowait(await self._attempt(reference, worker_id))

    async def _attempt(self, reference: ItemReference, worker_id: str) -> Outcome:
        def on_retry(attempt: int, error: BaseException) -> None:
            self.logger.warning(
                "Error when crawling item, retrying",
                reference=reference.locator,
                worker=worker_id,
                attempt=attempt,
                error=str(error),
            )

        try:
            return await self.policy.call(self.fetch, reference, on_retry=on_retry)
        except Exception as e:
            return ItemExhaustedError(reference, e, self.policy.attempts)
