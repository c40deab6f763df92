"""
Query descriptors - structural filter/sort/page inputs and the built query.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union

from ..errors import InvalidOperator


class FilterOperator(Enum):
    """Closed set of filter operators."""
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    GT = "gt"
    LT = "lt"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"

    @classmethod
    def coerce(cls, value: Union["FilterOperator", str]) -> "FilterOperator":
        """Accept enum members or their wire names ("startsWith")."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidOperator(value) from None

    @property
    def takes_value(self) -> bool:
        return self not in (FilterOperator.IS_EMPTY, FilterOperator.IS_NOT_EMPTY)

    @property
    def is_pattern(self) -> bool:
        return self in (FilterOperator.CONTAINS, FilterOperator.STARTS_WITH, FilterOperator.ENDS_WITH)


@dataclass(frozen=True)
class FilterCriterion:
    """One column filter; a list of criteria is combined with AND."""
    column: str
    operator: FilterOperator
    value: Any = None

    def __post_init__(self):
        object.__setattr__(self, "operator", FilterOperator.coerce(self.operator))


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    """Single-column sort."""
    column: str
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self):
        if not isinstance(self.direction, SortDirection):
            object.__setattr__(self, "direction", SortDirection(str(self.direction).lower()))


@dataclass(frozen=True)
class PageRequest:
    """1-based page number and page size."""
    page: int = 1
    page_size: int = 50

    def __post_init__(self):
        if not isinstance(self.page, int) or self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page!r}")
        if not isinstance(self.page_size, int) or self.page_size <= 0:
            raise ValueError(f"page_size must be > 0, got {self.page_size!r}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class BuiltQuery:
    """
    SQL text with positional placeholders plus the aligned parameters.

    The repr shows the query text and the parameter count only, so a
    BuiltQuery can be logged without leaking values.
    """
    query_text: str
    parameters: Tuple[Any, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "parameters", tuple(self.parameters))

    def __repr__(self) -> str:
        return f"BuiltQuery(query_text={self.query_text!r}, parameters=<{len(self.parameters)} values>)"

    __str__ = __repr__
