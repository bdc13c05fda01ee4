"""
Pipeline orchestration for dndcrawler.
"""

from __future__ import annotations

import sys
import time
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Callable, Optional, TextIO
from uuid import uuid4

import structlog

from dndcrawler.browser import create_session
from dndcrawler.browser.protocols import Session
from dndcrawler.config.config import Config
from dndcrawler.crawler.detail import DetailFetcher
from dndcrawler.crawler.paginator import ListPaginator
from dndcrawler.crawler.runner import TaskRunner
from dndcrawler.exceptions import ItemExhaustedError, PipelineError, SessionStartError
from dndcrawler.protocols import CrawlResult, DetailRecord
from dndcrawler.utils.atomic import atomic_write_json, dumps_json

SessionFactory = Callable[[Config], Session]


def _default_session_factory(config: Config) -> Session:
    return create_session(config.crawler)


class Pipeline:
    """
    Crawl driver: listing first, then every detail page, then the output.

    The rendering session is opened once and closed on every exit path.
    """

    def __init__(
        self,
        config: Config,
        session_factory: Optional[SessionFactory] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self.config = config
        self.session_factory = session_factory or _default_session_factory
        self.logger = (logger or structlog.get_logger(self.__class__.__name__)).bind(component="Pipeline")
        self.run_id = str(uuid4())

    async def crawl(self) -> Optional[CrawlResult]:
        """
        Run both phases and return the records, or None if the listing had no matching rows.

        Raises:
            SessionStartError: the rendering engine could not be started
            ItemExhaustedError: an item failed on every attempt
            PipelineError: any other failure during the crawl
        """
        with structlog.contextvars.bound_contextvars(run_id=self.run_id):
            stack = AsyncExitStack()
            try:
                session = await stack.enter_async_context(self.session_factory(self.config))
            except Exception as e:
                self.logger.error("Could not start session", engine=self.config.crawler.engine, error=str(e))
                raise SessionStartError(f"Could not start {self.config.crawler.engine} session: {e}") from e

            # A failing session close ends up here as well.
            try:
                async with stack:
                    return await self._crawl(session)
            except ItemExhaustedError as e:
                self.logger.error("Crawl failed", reference=e.reference.locator, error=str(e.last_error))
                raise
            except Exception as e:
                self.logger.error("Unexpected error", error=str(e), exc_info=True)
                raise PipelineError(str(e)) from e

    async def _crawl(self, session: Session) -> Optional[CrawlResult]:
        start_time = time.time()

        self.logger.info("Building list of items", start_url=self.config.catalog.start_url)
        paginator = ListPaginator(session, self.config.catalog, self.logger)
        references = await paginator.collect()

        if not references:
            self.logger.info("No items found", rulebooks=self.config.catalog.rulebooks)
            return None

        self.logger.info("Crawling items", item_count=len(references), concurrency=self.config.crawler.concurrency)
        fetcher = DetailFetcher(
            session,
            self.config.catalog.base_url,
            retry_limit=self.config.crawler.retry_limit,
            logger=self.logger,
        )
        runner = TaskRunner(
            fetcher.fetch,
            concurrency=self.config.crawler.concurrency,
            retry_limit=self.config.crawler.retry_limit,
            logger=self.logger,
        )
        result = await runner.run(references, on_record=self._report_progress)

        self.logger.info("Crawl completed", item_count=len(result), duration=round(time.time() - start_time, 2))
        return result

    def _report_progress(self, record: DetailRecord, count: int, total: int) -> None:
        self.logger.info("Read item", item=record.name, count=count, total=total)

    async def run(self, output: Optional[Path] = None, stream: Optional[TextIO] = None) -> Optional[CrawlResult]:
        """Crawl and write the JSON array to ``output``, or to ``stream`` (stdout by default)."""
        result = await self.crawl()
        if result is None:
            return None

        records = result.to_list()
        try:
            if output is not None:
                atomic_write_json(output, records)
                self.logger.info("Wrote output", path=str(output), item_count=len(records))
            else:
                out = stream or sys.stdout
                out.write(dumps_json(records))
                out.write("\n")
                out.flush()
        except (OSError, ValueError) as e:
            target = str(output) if output is not None else "stdout"
            self.logger.error("Could not write output", target=target, error=str(e))
            raise PipelineError(f"Could not write output to {target}: {e}") from e
        return result
