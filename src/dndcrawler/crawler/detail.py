"""
Detail fetcher: one item reference in, one ``DetailRecord`` out.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from dndcrawler.browser.protocols import Document, Session
from dndcrawler.exceptions import DetailFetchError
from dndcrawler.extractor.fields import FIELD_RULES, FieldRule, extract_fields
from dndcrawler.protocols import DetailRecord, ItemReference
from dndcrawler.recovery.retry import BoundedWithFailure


class DetailFetcher:
    """
    Loads an item's detail page and runs the field extractors on it.

    Each call owns one document for its whole lifetime. Loading plus
    extraction is retried as a unit up to ``retry_limit`` times; after that a
    ``DetailFetchError`` carries the last cause to the caller.
    """

    def __init__(
        self,
        session: Session,
        base_url: str,
        retry_limit: int = 10,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        rules: Sequence[FieldRule] = FIELD_RULES,
    ) -> None:
        self.session = session
        self.base_url = base_url
        self.policy = BoundedWithFailure(retry_limit)
        self.rules = rules
        self.logger = (logger or structlog.get_logger(__name__)).bind(component="DetailFetcher")

    async def fetch(self, reference: ItemReference) -> DetailRecord:
        url = reference.absolute_url(self.base_url)
        log = self.logger.bind(url=url)
        log.debug("Reading item")

        document = await self.session.new_document()
        try:
            record = await self.policy.call(
                self._load_and_extract,
                document,
                reference,
                url,
                log,
                on_retry=lambda attempt, error: log.info(
                    "Failed to read item page, retrying", attempt=attempt, error=str(error)
                ),
            )
        except Exception as e:
            log.warning("Failed to read item", attempts=self.policy.attempts, error=str(e))
            raise DetailFetchError(reference, e) from e
        finally:
            await document.close()

        log.debug("Read item", item=record.name)
        return record

    async def _load_and_extract(
        self,
        document: Document,
        reference: ItemReference,
        url: str,
        log: structlog.stdlib.BoundLogger,
    ) -> DetailRecord:
        await document.goto(url)
        fields = await extract_fields(document, log, self.rules)
        return DetailRecord.from_fields(reference, fields)
