"""
Rendering sessions for dndcrawler.

Two engines implement the same ``Session``/``Document``/``Node`` protocols:
- ``browser``: headless chromium through Playwright
- ``http``: httpx + lxml, no JavaScript
"""

from __future__ import annotations

from typing import Optional

import httpx

from dndcrawler.config.config import CrawlerConfig

from .http_session import HtmlDocument, HtmlNode, HttpSession
from .protocols import Document, Node, Session


def create_session(config: CrawlerConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> Session:
    """Build the session for the configured engine. The caller starts it with ``async with``."""
    if config.engine == "http":
        return HttpSession(config, transport=transport)

    from .playwright_session import PlaywrightSession

    return PlaywrightSession(config)


__all__ = [
    "Document",
    "HtmlDocument",
    "HtmlNode",
    "HttpSession",
    "Node",
    "Session",
    "create_session",
]
