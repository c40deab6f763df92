"""
Query layer - filter/sort/page descriptors, the parameterized query builder
and grid navigation helpers.
"""

from .models import (
    BuiltQuery,
    FilterCriterion,
    FilterOperator,
    PageRequest,
    SortDirection,
    SortSpec,
)
from .builder import QueryBuilder, build_query
from .navigation import PageWindow, next_sort

__all__ = [
    "BuiltQuery",
    "FilterCriterion",
    "FilterOperator",
    "PageRequest",
    "SortDirection",
    "SortSpec",
    "QueryBuilder",
    "build_query",
    "PageWindow",
    "next_sort",
]
