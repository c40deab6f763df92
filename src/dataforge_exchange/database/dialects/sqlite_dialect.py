"""
SQLite Dialect - SQLite-specific SQL operations
"""

import re
from typing import List, Optional
from .base import DatabaseDialect
from ..models import ColumnDescriptor, TableRef, display_type_for

import logging
logger = logging.getLogger(__name__)

_LENGTH_RE = re.compile(r"\((\d+)(?:\s*,\s*(\d+))?\)")


class SQLiteDialect(DatabaseDialect):
    """Dialect for SQLite databases."""

    name = "sqlite"

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def default_schema(self) -> str:
        return ""  # SQLite doesn't use schemas

    def quote_table(self, table: TableRef) -> str:
        # Attached databases are the only schema-like qualifier
        if table.schema:
            return f"{self.quote_identifier(table.schema)}.{self.quote_identifier(table.name)}"
        return self.quote_identifier(table.name)

    def get_table_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> List[ColumnDescriptor]:
        """Get columns using PRAGMA table_info."""
        rows = self._execute_all(f"PRAGMA table_info({self.quote_identifier(table_name)})")

        columns = []
        for row in rows:
            # cid, name, type, notnull, dflt_value, pk
            type_name = row[2].upper() if row[2] else "TEXT"
            is_pk = row[5] > 0
            # INTEGER PRIMARY KEY aliases the rowid and is assigned automatically
            rowid_alias = is_pk and type_name == "INTEGER"
            precision, scale = _parse_length(type_name)
            columns.append(ColumnDescriptor(
                name=row[1],
                source_type=type_name,
                display_type=display_type_for(type_name),
                nullable=(row[3] == 0) and not is_pk,
                precision=precision,
                scale=scale,
                has_default=row[4] is not None or rowid_alias,
                is_primary_key=is_pk,
            ))
        return columns


def _parse_length(type_name: str):
    """Extract (precision, scale) from e.g. VARCHAR(50) or NUMERIC(10,2)."""
    match = _LENGTH_RE.search(type_name)
    if not match:
        return None, None
    precision = int(match.group(1))
    scale = int(match.group(2)) if match.group(2) else None
    return precision, scale
