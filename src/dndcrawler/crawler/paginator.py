"""
Catalog listing paginator.

Walks the listing one page at a time, keeps rows whose rulebook is allowed,
and returns their references in page-then-row order.
"""

from __future__ import annotations

from typing import FrozenSet, List, Optional

import structlog

from dndcrawler.browser.protocols import Document, Node, Session
from dndcrawler.config.config import CatalogConfig
from dndcrawler.exceptions import RowParseError
from dndcrawler.protocols import ItemReference
from dndcrawler.recovery.retry import Unbounded

logger = structlog.get_logger(__name__)


class ListPaginator:
    """
    Collects item references from the paginated catalog listing.

    Row failures are skipped with a warning. Moving to the next page is
    retried without limit, since a half-walked listing is useless.
    """

    def __init__(
        self,
        session: Session,
        catalog: CatalogConfig,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        navigation_policy: Optional[Unbounded] = None,
    ) -> None:
        self.session = session
        self.catalog = catalog
        self.allowed_origins: FrozenSet[str] = frozenset(catalog.rulebooks)
        self.navigation_policy = navigation_policy or Unbounded()
        self.logger = (logger or structlog.get_logger(__name__)).bind(component="ListPaginator")

    async def collect(self, start_url: Optional[str] = None) -> List[ItemReference]:
        """Walk the listing from ``start_url`` (default: the configured list page)."""
        url = start_url or self.catalog.start_url
        references: List[ItemReference] = []

        document = await self.session.new_document()
        try:
            await document.goto(url)
            page_number = 1
            while True:
                found = await self._read_page(document)
                references.extend(found)
                self.logger.debug("Read listing page", page=page_number, found=len(found))

                next_link = await document.query_one(self.catalog.next_selector)
                if next_link is None:
                    self.logger.info("No more listing pages", pages=page_number, found=len(references))
                    break

                self.logger.debug("Navigating to next listing page", page=page_number + 1)
                await self.navigation_policy.call(
                    document.follow,
                    next_link,
                    on_retry=lambda attempt, error: self.logger.warning(
                        "Navigation to next page failed, retrying", attempt=attempt, error=str(error)
                    ),
                )
                page_number += 1
        finally:
            await document.close()

        return references

    async def _read_page(self, document: Document) -> List[ItemReference]:
        found: List[ItemReference] = []
        for index, row in enumerate(await document.query_all(self.catalog.row_selector)):
            try:
                reference = await self._read_row(row)
            except Exception as e:
                self.logger.warning("Error parsing listing row", row=index, url=document.url, error=str(e))
                continue
            if reference is not None:
                found.append(reference)
        return found

    async def _read_row(self, row: Node) -> Optional[ItemReference]:
        """Return the row's reference, or None for header rows and other rulebooks."""
        if await row.query_one(self.catalog.header_selector) is not None:
            return None

        origin_node = await row.query_one(self.catalog.origin_selector)
        if origin_node is None:
            raise RowParseError("Row has no rulebook cell")
        origin = (await origin_node.text()).strip()
        if origin not in self.allowed_origins:
            return None

        link = await row.query_one(self.catalog.link_selector)
        if link is None:
            raise RowParseError("Row has no item link")
        href = await link.attribute("href")
        if not href:
            raise RowParseError("Item link has no href")
        try:
            return ItemReference(href)
        except ValueError as e:
            raise RowParseError(str(e)) from e
