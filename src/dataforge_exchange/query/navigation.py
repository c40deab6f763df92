"""
Grid navigation helpers - sort toggle cycle and page arithmetic.

These run on the caller side before a query is built: the sort cycle
resolves a header click into a SortSpec, PageWindow validates a page number
against the current row count.
"""

import math
from typing import Optional

from ..errors import PageOutOfRange
from .models import PageRequest, SortDirection, SortSpec


def next_sort(current: Optional[SortSpec], column: str) -> Optional[SortSpec]:
    """
    Advance the sort state after a click on a column header.

    Same column: unsorted -> asc -> desc -> unsorted.
    Different column: always starts at asc.
    """
    if current is None or current.column != column:
        return SortSpec(column, SortDirection.ASC)
    if current.direction is SortDirection.ASC:
        return SortSpec(column, SortDirection.DESC)
    return None


class PageWindow:
    """
    Page bounds for a result set of total_rows rows.

    An empty result still has one (empty) page.
    """

    def __init__(self, total_rows: int, page_size: int):
        if total_rows < 0:
            raise ValueError(f"total_rows must be >= 0, got {total_rows}")
        if page_size <= 0:
            raise ValueError(f"page_size must be > 0, got {page_size}")
        self.total_rows = total_rows
        self.page_size = page_size

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_rows / self.page_size))

    def has_previous(self, page: int) -> bool:
        return page > 1

    def has_next(self, page: int) -> bool:
        return page < self.total_pages

    def request(self, page: int) -> PageRequest:
        """
        Build the PageRequest for a page number.

        Raises:
            PageOutOfRange: If page < 1 or page > total_pages
        """
        if page < 1 or page > self.total_pages:
            raise PageOutOfRange(page, self.total_pages)
        return PageRequest(page=page, page_size=self.page_size)

    def __repr__(self) -> str:
        return f"PageWindow(total_rows={self.total_rows}, page_size={self.page_size}, pages={self.total_pages})"
