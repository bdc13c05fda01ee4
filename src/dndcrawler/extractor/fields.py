"""
Field extraction rules for spell detail pages.

Every field of a ``DetailRecord`` (except ``id``, which comes from the
reference) is described by a ``FieldRule``: the field name, an async reader
taking the loaded document, and the default used when the reader fails.
``extract_fields`` walks the table in order. Each optional rule runs inside its
own fault boundary, so one broken field never affects another.

``name`` is the only required rule. A page without a readable name heading is
treated as not loaded at all and its error propagates to the detail fetcher,
which retries the whole load.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from dndcrawler.browser.protocols import Document
from dndcrawler.exceptions import FieldExtractionError
from dndcrawler.protocols import ClassLevel, DomainLevel, SourceCitation

Reader = Callable[[Document], Awaitable[Any]]

_CLASS_LEVEL_RE = re.compile(r"^(.*)\s(\d+)$")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_ANY_INT_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class FieldRule:
    name: str
    read: Reader
    default: Any = None
    required: bool = False

    def fallback(self) -> Any:
        return copy.copy(self.default)


# --- Parsing helpers ---


def parse_class_level(text: str) -> ClassLevel:
    """Parse ``"Sorcerer/Wizard 2"`` into a class/level pair."""
    match = _CLASS_LEVEL_RE.match(text.strip())
    if match is None:
        raise FieldExtractionError(f"Not a class level: {text!r}")
    return ClassLevel(class_name=match.group(1), level=int(match.group(2)))


def leading_int(text: Optional[str]) -> int:
    match = _LEADING_INT_RE.match(text or "")
    if match is None:
        raise FieldExtractionError(f"Not a number: {text!r}")
    return int(match.group(1))


def first_int(text: Optional[str]) -> int:
    match = _ANY_INT_RE.search(text or "")
    if match is None:
        raise FieldExtractionError(f"No number in {text!r}")
    return int(match.group(0))


def _labelled_path(label: str) -> str:
    return f'//strong[text()="{label}:"]/following-sibling::text()[1]'


# --- Readers ---


async def read_name(document: Document) -> str:
    node = await document.query_one("#content h2")
    if node is None:
        raise FieldExtractionError("Name heading not found")
    return (await node.text()).strip()


async def read_source(document: Document) -> SourceCitation:
    node = await document.query_one('#content a[href^="/rulebooks/"]')
    if node is None:
        raise FieldExtractionError("Rulebook link not found")
    rulebook = (await node.text()).strip()
    page = first_int(await node.next_sibling_text())
    return SourceCitation(rulebook=rulebook, page=page)


def link_texts(selector: str) -> Reader:
    """Reader returning the stripped text of every node matching ``selector``."""

    async def read(document: Document) -> List[str]:
        return [(await node.text()).strip() for node in await document.query_all(selector)]

    return read


async def read_class_levels(document: Document) -> List[ClassLevel]:
    nodes = await document.query_all('#content a[href^="/classes/"]')
    return [parse_class_level(await node.text()) for node in nodes]


async def read_domain_levels(document: Document) -> List[DomainLevel]:
    levels = []
    for node in await document.query_all('#content a[href^="/spells/domains/"]'):
        domain = (await node.text()).strip()
        levels.append(DomainLevel(domain=domain, level=leading_int(await node.next_sibling_text())))
    return levels


async def read_components(document: Document) -> List[str]:
    components = []
    for node in await document.query_xpath('//strong[text()="Components:"]/following-sibling::abbr'):
        title = await node.attribute("title")
        components.append(title if title is not None else (await node.text()).strip())
    return components


def labelled_text(label: str) -> Reader:
    """Reader for the text directly after a ``<strong>Label:</strong>`` marker."""
    path = _labelled_path(label)

    async def read(document: Document) -> str:
        nodes = await document.query_xpath(path)
        if not nodes:
            raise FieldExtractionError(f"No {label!r} entry")
        return (await nodes[0].text()).strip()

    return read


async def read_description(document: Document) -> str:
    node = await document.query_one("#content .nice-textile")
    if node is None:
        raise FieldExtractionError("Description block not found")
    return (await node.inner_html()).strip()


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("name", read_name, required=True),
    FieldRule("source", read_source, None),
    FieldRule("schools", link_texts('#content a[href^="/spells/schools/"]'), []),
    FieldRule("subschools", link_texts('#content a[href^="/spells/sub-schools/"]'), []),
    FieldRule("descriptors", link_texts('#content a[href^="/spells/descriptors/"]'), []),
    FieldRule("class_levels", read_class_levels, []),
    FieldRule("domain_levels", read_domain_levels, []),
    FieldRule("components", read_components, []),
    FieldRule("casting_time", labelled_text("Casting Time"), None),
    FieldRule("range", labelled_text("Range"), None),
    FieldRule("area", labelled_text("Area"), None),
    FieldRule("target", labelled_text("Target"), None),
    FieldRule("effect", labelled_text("Effect"), None),
    FieldRule("duration", labelled_text("Duration"), None),
    FieldRule("saving_throw", labelled_text("Saving Throw"), None),
    FieldRule("spell_resistance", labelled_text("Spell Resistance"), None),
    FieldRule("description", read_description, None),
)


async def extract_fields(
    document: Document,
    logger: Optional[structlog.stdlib.BoundLogger] = None,
    rules: Sequence[FieldRule] = FIELD_RULES,
) -> Dict[str, Any]:
    """Run every rule against ``document`` and return ``{field name: value}``.

    Optional rules that fail are logged and replaced by their default. A
    failing required rule raises.
    """
    log = logger or structlog.get_logger(__name__)
    values: Dict[str, Any] = {}

    for rule in rules:
        if rule.required:
            value = await rule.read(document)
        else:
            try:
                value = await rule.read(document)
            except Exception as e:
                log.warning("Could not read field", field=rule.name, error=str(e))
                values[rule.name] = rule.fallback()
                continue
        log.debug("Read field", field=rule.name, value=value)
        values[rule.name] = value

    return values
