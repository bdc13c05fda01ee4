"""Shared test helpers."""

from .catalog_site import (
    ALWAYS,
    BASE_URL,
    COMPLETE_ARCANE,
    LIST_PATH,
    PHB,
    SPELL_COMPENDIUM,
    CatalogSite,
    detail_page,
    listing_page,
    spell_locator,
)
from .tracking import TrackingDocument, TrackingSession

__all__ = [
    "ALWAYS",
    "BASE_URL",
    "COMPLETE_ARCANE",
    "LIST_PATH",
    "PHB",
    "SPELL_COMPENDIUM",
    "CatalogSite",
    "detail_page",
    "listing_page",
    "spell_locator",
    "TrackingDocument",
    "TrackingSession",
]
