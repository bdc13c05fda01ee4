"""
Retry policies for dndcrawler.

Provides the unbounded navigation policy and the bounded detail policy.
"""

from .retry import BoundedWithFailure, Unbounded

__all__ = [
    "BoundedWithFailure",
    "Unbounded",
]
