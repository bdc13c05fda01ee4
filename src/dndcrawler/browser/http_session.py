"""
Plain HTTP rendering session.

Pages are fetched with httpx and parsed with lxml, so nothing that needs
JavaScript will render. The catalog is server-rendered, which makes this
engine a lighter alternative to the headless browser and the one used in
offline tests (through ``httpx.MockTransport``).
"""

from __future__ import annotations

from typing import List, Optional, Union
from urllib.parse import urljoin

import httpx
import lxml.html
import structlog
from lxml import etree

from dndcrawler.config.config import CrawlerConfig
from dndcrawler.exceptions import DocumentLoadError

logger = structlog.get_logger(__name__)

_Element = Union[lxml.html.HtmlElement, str]


class HtmlNode:
    """Node backed by an lxml element or an XPath string result."""

    def __init__(self, element: _Element) -> None:
        self._element = element

    async def text(self) -> str:
        if isinstance(self._element, str):
            return str(self._element)
        return self._element.text_content()

    async def attribute(self, name: str) -> Optional[str]:
        if isinstance(self._element, str):
            return None
        return self._element.get(name)

    async def inner_html(self) -> str:
        if isinstance(self._element, str):
            return str(self._element)
        # tostring() keeps each child's tail, which is what innerHTML shows.
        parts = [self._element.text or ""]
        parts.extend(lxml.html.tostring(child, encoding="unicode") for child in self._element)
        return "".join(parts)

    async def next_sibling_text(self) -> Optional[str]:
        if isinstance(self._element, str):
            return None
        if self._element.tail:
            return self._element.tail
        sibling = self._element.getnext()
        return sibling.text_content() if sibling is not None else None

    async def query_one(self, selector: str) -> Optional[HtmlNode]:
        if isinstance(self._element, str):
            return None
        matches = self._element.cssselect(selector)
        return HtmlNode(matches[0]) if matches else None


class HtmlDocument:
    """Document parsed with lxml; loaded over HTTP or from a string."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client
        self._root: Optional[lxml.html.HtmlElement] = None
        self.url: Optional[str] = None

    def load(self, html: Union[str, bytes], url: str, encoding: Optional[str] = None) -> None:
        """Replace the current document with ``html`` as if it was served from ``url``.

        Markup is parsed as bytes so pages starting with an XML declaration
        load too. ``encoding`` overrides whatever the page itself declares.
        """
        if isinstance(html, str):
            html, encoding = html.encode("utf-8"), "utf-8"
        parser = lxml.html.HTMLParser(encoding=encoding) if encoding else None
        try:
            self._root = lxml.html.document_fromstring(html, parser=parser, base_url=url)
        except (etree.ParserError, ValueError, LookupError) as e:
            raise DocumentLoadError(f"Could not parse {url}: {e}") from e
        self.url = url

    async def goto(self, url: str) -> None:
        if self._client is None:
            raise DocumentLoadError("Document has no HTTP client to load from")
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DocumentLoadError(f"Could not load {url}: {e}") from e
        self.load(response.content, str(response.url), response.charset_encoding)

    def _require_root(self) -> lxml.html.HtmlElement:
        if self._root is None:
            raise DocumentLoadError("No document loaded")
        return self._root

    async def query_one(self, selector: str) -> Optional[HtmlNode]:
        matches = self._require_root().cssselect(selector)
        return HtmlNode(matches[0]) if matches else None

    async def query_all(self, selector: str) -> List[HtmlNode]:
        return [HtmlNode(element) for element in self._require_root().cssselect(selector)]

    async def query_xpath(self, path: str) -> List[HtmlNode]:
        result = self._require_root().xpath(path)
        if not isinstance(result, list):
            raise DocumentLoadError(f"XPath does not select nodes: {path}")
        return [HtmlNode(item) for item in result]

    async def follow(self, node: HtmlNode) -> None:
        href = await node.attribute("href")
        if not href:
            raise DocumentLoadError("Cannot follow a node without href")
        await self.goto(urljoin(self.url or "", href))

    async def close(self) -> None:
        self._root = None


class HttpSession:
    """Rendering session sharing one httpx client between all documents."""

    def __init__(self, config: CrawlerConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.logger = logger.bind(component="HttpSession")

    async def start(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=self.config.timeout,
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
            transport=self._transport,
        )
        self.logger.debug("HTTP session started", timeout=self.config.timeout)

    async def new_document(self) -> HtmlDocument:
        if self._client is None:
            raise DocumentLoadError("Session is not started")
        return HtmlDocument(self._client)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self.logger.debug("HTTP session closed")

    async def __aenter__(self) -> HttpSession:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
