"""Utility modules for dndcrawler."""

from .atomic import atomic_write_json, atomic_write_text, dumps_json

__all__ = ["atomic_write_json", "atomic_write_text", "dumps_json"]
