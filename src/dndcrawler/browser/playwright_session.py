"""
Headless browser rendering session backed by Playwright (chromium).
"""

from __future__ import annotations

from typing import Any, List, Optional

import structlog
from playwright.async_api import Browser, JSHandle, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from dndcrawler.config.config import CrawlerConfig
from dndcrawler.exceptions import DocumentLoadError

logger = structlog.get_logger(__name__)

VIEWPORT = {"width": 1200, "height": 1024}

# Evaluated in the page so XPath may select text nodes, which Playwright
# locators cannot return.
_XPATH_SNAPSHOT_JS = """
(path) => {
    const result = document.evaluate(path, document, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null);
    const nodes = [];
    for (let i = 0; i < result.snapshotLength; i++) {
        nodes.push(result.snapshotItem(i));
    }
    return nodes;
}
"""


class PlaywrightNode:
    """Node wrapping a JSHandle; element handles and text nodes alike."""

    def __init__(self, handle: JSHandle) -> None:
        self.handle = handle

    async def _eval(self, expression: str, arg: Any = None) -> Any:
        return await self.handle.evaluate(expression, arg)

    async def text(self) -> str:
        return await self._eval("n => n.textContent") or ""

    async def attribute(self, name: str) -> Optional[str]:
        return await self._eval("(n, name) => n.getAttribute ? n.getAttribute(name) : null", name)

    async def inner_html(self) -> str:
        return await self._eval("n => n.innerHTML !== undefined ? n.innerHTML : n.textContent") or ""

    async def next_sibling_text(self) -> Optional[str]:
        return await self._eval("n => n.nextSibling ? n.nextSibling.textContent : null")

    async def query_one(self, selector: str) -> Optional[PlaywrightNode]:
        element = self.handle.as_element()
        if element is None:
            return None
        found = await element.query_selector(selector)
        return PlaywrightNode(found) if found is not None else None


class PlaywrightDocument:
    """One browser tab."""

    def __init__(self, page: Page) -> None:
        self._page = page
        self.url: Optional[str] = None

    async def goto(self, url: str) -> None:
        try:
            response = await self._page.goto(url)
        except PlaywrightError as e:
            raise DocumentLoadError(f"Could not load {url}: {e.message}") from e
        if response is not None and response.status >= 400:
            raise DocumentLoadError(f"Could not load {url}: HTTP {response.status}")
        self.url = self._page.url

    async def query_one(self, selector: str) -> Optional[PlaywrightNode]:
        handle = await self._page.query_selector(selector)
        return PlaywrightNode(handle) if handle is not None else None

    async def query_all(self, selector: str) -> List[PlaywrightNode]:
        return [PlaywrightNode(handle) for handle in await self._page.query_selector_all(selector)]

    async def query_xpath(self, path: str) -> List[PlaywrightNode]:
        snapshot = await self._page.evaluate_handle(_XPATH_SNAPSHOT_JS, path)
        try:
            properties = await snapshot.get_properties()
        finally:
            await snapshot.dispose()
        indices = sorted((key for key in properties if key.isdigit()), key=int)
        return [PlaywrightNode(properties[key]) for key in indices]

    async def follow(self, node: PlaywrightNode) -> None:
        element = node.handle.as_element()
        if element is None:
            raise DocumentLoadError("Cannot follow a text node")
        try:
            async with self._page.expect_navigation():
                await element.click()
        except PlaywrightError as e:
            raise DocumentLoadError(f"Navigation from {self.url} failed: {e.message}") from e
        self.url = self._page.url

    async def close(self) -> None:
        await self._page.close()


class PlaywrightSession:
    """Shared chromium instance; one page per document."""

    def __init__(self, config: CrawlerConfig) -> None:
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self.logger = logger.bind(component="PlaywrightSession")

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
        except BaseException:
            await self._playwright.stop()
            self._playwright = None
            raise
        self.logger.debug("Browser started", headless=self.config.headless)

    async def new_document(self) -> PlaywrightDocument:
        if self._browser is None:
            raise DocumentLoadError("Session is not started")
        page = await self._browser.new_page(viewport=VIEWPORT)
        page.set_default_timeout(self.config.timeout * 1000)
        return PlaywrightDocument(page)

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self.logger.debug("Browser closed")

    async def __aenter__(self) -> PlaywrightSession:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
