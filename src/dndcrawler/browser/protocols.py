"""
Protocols for the page-rendering capability the crawler consumes.

A ``Session`` is shared by the whole run; every paginator walk and every
detail fetch opens its own ``Document`` and closes it when done.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable


@runtime_checkable
class Node(Protocol):
    """A node in a loaded document: an element or, for XPath results, a text node."""

    async def text(self) -> str:
        """Text content of the node."""
        ...

    async def attribute(self, name: str) -> Optional[str]:
        ...

    async def inner_html(self) -> str:
        ...

    async def next_sibling_text(self) -> Optional[str]:
        """Text of the node directly following this one, if any."""
        ...

    async def query_one(self, selector: str) -> Optional[Node]:
        """First descendant matching a CSS selector."""
        ...


@runtime_checkable
class Document(Protocol):
    """One loaded page."""

    url: Optional[str]

    async def goto(self, url: str) -> None:
        """Load ``url``, raising ``DocumentLoadError`` when it cannot be loaded."""
        ...

    async def query_one(self, selector: str) -> Optional[Node]:
        ...

    async def query_all(self, selector: str) -> List[Node]:
        ...

    async def query_xpath(self, path: str) -> List[Node]:
        ...

    async def follow(self, node: Node) -> None:
        """Activate a link node and wait until the resulting navigation finishes."""
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class Session(Protocol):
    """A running rendering engine."""

    async def new_document(self) -> Document:
        ...

    async def close(self) -> None:
        ...

    async def __aenter__(self) -> Session:
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        ...
