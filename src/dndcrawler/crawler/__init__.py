"""
dndcrawler crawl core.

Two phases that never overlap:
- ListPaginator walks the catalog listing and filters rows by rulebook
- TaskRunner fans DetailFetcher calls out over the references, at most
  ``concurrency`` at a time, retrying each item a bounded number of times
"""

from .detail import DetailFetcher
from .paginator import ListPaginator
from .runner import TaskRunner

__all__ = [
    "DetailFetcher",
    "ListPaginator",
    "TaskRunner",
]
