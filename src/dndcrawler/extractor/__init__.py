"""
dndcrawler field extraction.

Turns a loaded spell detail page into the field values of a ``DetailRecord``
through a table of independent ``FieldRule`` readers.
"""

from .fields import FIELD_RULES, FieldRule, extract_fields

__all__ = [
    "FIELD_RULES",
    "FieldRule",
    "extract_fields",
]
