"""
dndcrawler - crawl the D&D tools spell catalog into structured JSON.
"""

from __future__ import annotations

__version__ = "1.0.0"

from .config import Config
from .pipeline import Pipeline

__all__ = ["__version__", "Config", "Pipeline"]
