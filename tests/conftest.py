"""
Test configuration for dndcrawler.

All crawls run against an in-memory catalog site served through
``httpx.MockTransport`` (see ``tests.helpers.catalog_site``), so no test
touches the network or needs a browser.
"""

# Standard library imports
import logging
from typing import AsyncGenerator, Generator

# Third-party imports
import pytest
import pytest_asyncio
import structlog

# Local imports
from dndcrawler.browser.http_session import HttpSession
from dndcrawler.config import CatalogConfig, Config, CrawlerConfig
from tests.helpers import BASE_URL, CatalogSite

# ============================================================================
# Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    """Undo whatever ``configure_logging`` did during a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


# ============================================================================
# Core Test Fixtures
# ============================================================================


@pytest.fixture
def config() -> Config:
    """Configuration pointing at the in-memory catalog with small limits."""
    return Config(
        catalog=CatalogConfig(base_url=BASE_URL),
        crawler=CrawlerConfig(engine="http", concurrency=2, retry_limit=3),
    )


@pytest.fixture
def site() -> CatalogSite:
    return CatalogSite()


@pytest_asyncio.fixture
async def session(site: CatalogSite, config: Config) -> AsyncGenerator[HttpSession, None]:
    """A started HTTP session wired to ``site``."""
    async with site.session(config.crawler) as started:
        yield started
