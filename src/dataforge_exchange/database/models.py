"""
Table metadata models - column descriptors and table references.

ColumnDescriptor is the authoritative description of one table column. The
query builder uses the descriptor set as an identifier allowlist; the type
formatter uses it to convert values.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from ..constants import IDENTIFIER_PATTERN
from ..errors import InvalidIdentifier


class DisplayType(Enum):
    """Normalized column type used for formatting and validation."""
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    INTEGER = "integer"
    DECIMAL = "decimal"
    TEXT = "text"


# Checked in order; first keyword found in the upper-cased type wins
_TYPE_KEYWORDS = (
    (("TIMESTAMP", "DATETIME", "SMALLDATETIME"), DisplayType.TIMESTAMP),
    (("BOOL", "BIT"), DisplayType.BOOLEAN),
    (("DATE",), DisplayType.DATE),
    (("TIME",), DisplayType.TIME),
    (("INTERVAL",), DisplayType.TEXT),
    (("INT", "SERIAL"), DisplayType.INTEGER),
    (("NUMERIC", "DECIMAL", "NUMBER", "FLOAT", "REAL", "DOUBLE", "MONEY"), DisplayType.DECIMAL),
)


def display_type_for(source_type: str) -> DisplayType:
    """
    Normalize a SQL type name to a DisplayType.

    Examples:
        "BIT" -> BOOLEAN, "BIGINT" -> INTEGER, "NUMERIC(10,2)" -> DECIMAL,
        "DATETIME2" -> TIMESTAMP, "VARCHAR(50)" -> TEXT
    """
    upper = (source_type or "").upper()
    for keywords, display_type in _TYPE_KEYWORDS:
        if any(k in upper for k in keywords):
            return display_type
    return DisplayType.TEXT


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    Column metadata for one table column.

    precision is the maximum length for text columns and the total digit
    count for numeric columns; scale is the number of fractional digits.
    """
    name: str
    source_type: str
    display_type: DisplayType = DisplayType.TEXT
    nullable: bool = True
    precision: Optional[int] = None
    scale: Optional[int] = None
    has_default: bool = False
    is_primary_key: bool = False
    read_only: bool = False

    @classmethod
    def from_sql_type(cls, name: str, source_type: str, **kwargs) -> "ColumnDescriptor":
        """Create a descriptor, deriving display_type from the SQL type name."""
        return cls(name=name, source_type=source_type,
                   display_type=display_type_for(source_type), **kwargs)

    @property
    def is_required(self) -> bool:
        """NOT NULL without a default and writable: an import must supply it."""
        return not self.nullable and not self.has_default and not self.read_only


@dataclass(frozen=True)
class TableSchema:
    """Ordered column descriptors for one table."""
    table_name: str
    columns: Tuple[ColumnDescriptor, ...]
    _by_name: Dict[str, ColumnDescriptor] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "_by_name", {c.name: c for c in self.columns})

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def has_column(self, name: str) -> bool:
        return name in self._by_name

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        return self._by_name.get(name)

    def find_column(self, name: str) -> Optional[ColumnDescriptor]:
        """Case-insensitive lookup, exact match preferred."""
        exact = self._by_name.get(name)
        if exact is not None:
            return exact
        lowered = name.strip().lower()
        for col in self.columns:
            if col.name.lower() == lowered:
                return col
        return None

    def required_columns(self) -> Tuple[ColumnDescriptor, ...]:
        return tuple(c for c in self.columns if c.is_required)

    def primary_key(self) -> Tuple[ColumnDescriptor, ...]:
        return tuple(c for c in self.columns if c.is_primary_key)


_IDENTIFIER_RE = re.compile(IDENTIFIER_PATTERN)


def validate_identifier(identifier: str, context: str) -> str:
    """
    Validate a table or schema name against the identifier pattern.

    Args:
        identifier: Raw identifier
        context: What is being validated, for the error message

    Returns:
        The trimmed identifier

    Raises:
        InvalidIdentifier: If empty or containing invalid characters
    """
    if not identifier or not isinstance(identifier, str) or not identifier.strip():
        raise InvalidIdentifier(f"Invalid {context}: identifier cannot be empty")
    trimmed = identifier.strip()
    if not _IDENTIFIER_RE.match(trimmed):
        raise InvalidIdentifier(f"Invalid {context}: '{identifier}' contains invalid characters")
    return trimmed


@dataclass(frozen=True)
class TableRef:
    """A table name with an optional schema qualifier."""
    name: str
    schema: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "name", validate_identifier(self.name, "table name"))
        if self.schema is not None:
            object.__setattr__(self, "schema", validate_identifier(self.schema, "schema name"))

    @classmethod
    def parse(cls, qualified_name: str) -> "TableRef":
        """
        Split "schema.table" on the first dot.

        Examples:
            "sales.orders" -> TableRef("orders", "sales")
            "orders" -> TableRef("orders")
        """
        if not qualified_name:
            raise InvalidIdentifier("Invalid table name: identifier cannot be empty")
        schema, dot, name = qualified_name.partition(".")
        if dot and schema:
            return cls(name=name, schema=schema)
        return cls(name=qualified_name)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name

    def __str__(self) -> str:
        return self.qualified_name
