"""
Core dataclasses for dndcrawler.

The crawl produces ``DetailRecord`` values keyed by an ``ItemReference``. A
reference is the relative locator found in the catalog table; everything a
record needs to be identifiable comes from it, never from the fetched page.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import urljoin

_ITEM_ID_RE = re.compile(r"(\d+)/?$")


def derive_item_id(locator: str) -> str:
    """Return the trailing numeric segment of a locator.

    >>> derive_item_id("/spells/players-handbook-v35--6/acid-arrow--1922/")
    '1922'
    """
    match = _ITEM_ID_RE.search(locator)
    if match is None:
        raise ValueError(f"No item id in locator: {locator!r}")
    return match.group(1)


@dataclass(frozen=True)
class ItemReference:
    """Locator of one catalog item, as found in the listing."""

    locator: str

    def __post_init__(self) -> None:
        # Fail at construction so an unidentifiable row never leaves the paginator.
        derive_item_id(self.locator)

    @property
    def item_id(self) -> str:
        return derive_item_id(self.locator)

    def absolute_url(self, base_url: str) -> str:
        return urljoin(base_url.rstrip("/") + "/", self.locator)


@dataclass(frozen=True)
class SourceCitation:
    rulebook: str
    page: int

    def to_dict(self) -> Dict[str, Any]:
        return {"rulebook": self.rulebook, "page": self.page}


@dataclass(frozen=True)
class ClassLevel:
    class_name: str
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {"class": self.class_name, "level": self.level}


@dataclass(frozen=True)
class DomainLevel:
    domain: str
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {"domain": self.domain, "level": self.level}


@dataclass(frozen=True)
class DetailRecord:
    """Fully parsed detail page of one item.

    List fields are stored as tuples so a constructed record cannot change.
    """

    id: str
    name: str
    source: Optional[SourceCitation] = None
    description: Optional[str] = None
    class_levels: tuple[ClassLevel, ...] = ()
    domain_levels: tuple[DomainLevel, ...] = ()
    schools: tuple[str, ...] = ()
    subschools: tuple[str, ...] = ()
    descriptors: tuple[str, ...] = ()
    components: tuple[str, ...] = ()
    casting_time: Optional[str] = None
    range: Optional[str] = None
    area: Optional[str] = None
    target: Optional[str] = None
    effect: Optional[str] = None
    duration: Optional[str] = None
    saving_throw: Optional[str] = None
    spell_resistance: Optional[str] = None

    @classmethod
    def from_fields(cls, reference: ItemReference, fields: Dict[str, Any]) -> DetailRecord:
        """Build a record from the values returned by the field extractors."""
        return cls(
            id=reference.item_id,
            name=fields["name"],
            source=fields.get("source"),
            description=fields.get("description"),
            class_levels=tuple(fields.get("class_levels") or ()),
            domain_levels=tuple(fields.get("domain_levels") or ()),
            schools=tuple(fields.get("schools") or ()),
            subschools=tuple(fields.get("subschools") or ()),
            descriptors=tuple(fields.get("descriptors") or ()),
            components=tuple(fields.get("components") or ()),
            casting_time=fields.get("casting_time"),
            range=fields.get("range"),
            area=fields.get("area"),
            target=fields.get("target"),
            effect=fields.get("effect"),
            duration=fields.get("duration"),
            saving_throw=fields.get("saving_throw"),
            spell_resistance=fields.get("spell_resistance"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the published JSON shape (camelCase keys)."""
        return {
            "id": self.id,
            "name": self.name,
            "source": self.source.to_dict() if self.source else None,
            "description": self.description,
            "classLevels": [level.to_dict() for level in self.class_levels],
            "domainLevels": [level.to_dict() for level in self.domain_levels],
            "schools": list(self.schools),
            "subschools": list(self.subschools),
            "descriptors": list(self.descriptors),
            "components": list(self.components),
            "castingTime": self.casting_time,
            "range": self.range,
            "area": self.area,
            "target": self.target,
            "effect": self.effect,
            "duration": self.duration,
            "savingThrow": self.saving_throw,
            "spellResistance": self.spell_resistance,
        }


@dataclass
class CrawlResult:
    """Records accumulated over one run, in completion order."""

    total: int = 0
    records: List[DetailRecord] = field(default_factory=list)

    def append(self, record: DetailRecord) -> int:
        self.records.append(record)
        return len(self.records)

    def to_list(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[DetailRecord]:
        return iter(self.records)
