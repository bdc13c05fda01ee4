"""
Exception hierarchy for dndcrawler.

Row, field and document-load errors are recovered close to where they occur;
only ``PipelineError`` subclasses are allowed to end a run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dndcrawler.protocols import ItemReference


class CrawlerError(Exception):
    """Base class for all dndcrawler errors."""


class ConfigError(CrawlerError):
    """Configuration could not be loaded or validated."""


class RowParseError(CrawlerError):
    """A catalog table row could not be turned into an item reference."""


class FieldExtractionError(CrawlerError):
    """A detail field could not be located or parsed."""


class DocumentLoadError(CrawlerError):
    """A document could not be loaded from the rendering engine."""


class DetailFetchError(CrawlerError):
    """The detail fetcher exhausted its own load retries for one item."""

    def __init__(self, reference: ItemReference, cause: BaseException) -> None:
        super().__init__(f"Failed to read {reference.locator}: {cause}")
        self.reference = reference
        self.cause = cause


class PipelineError(CrawlerError):
    """Unrecoverable error that aborts the whole crawl."""


class SessionStartError(PipelineError):
    """The rendering session could not be started."""


class ItemExhaustedError(PipelineError):
    """One item failed on every allowed attempt, so the run fails as a whole."""

    def __init__(self, reference: ItemReference, last_error: BaseException, attempts: int) -> None:
        super().__init__(f"Giving up on {reference.locator} after {attempts} attempts: {last_error}")
        self.reference = reference
        self.last_error = last_error
        self.attempts = attempts
