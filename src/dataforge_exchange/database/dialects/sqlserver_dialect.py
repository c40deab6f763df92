"""
SQL Server Dialect - SQL Server-specific SQL operations
"""

from typing import List, Optional
from .base import DatabaseDialect, _validate_count
from ..models import ColumnDescriptor, TableRef, display_type_for

import logging
logger = logging.getLogger(__name__)


class SQLServerDialect(DatabaseDialect):
    """Dialect for SQL Server databases (pyodbc driver, qmark paramstyle)."""

    name = "sqlserver"

    @property
    def quote_char(self) -> str:
        return "["

    @property
    def quote_char_end(self) -> str:
        return "]"

    @property
    def default_schema(self) -> str:
        return "dbo"

    def quote_table(self, table: TableRef) -> str:
        """Include the database name when the dialect targets a specific database."""
        parts = []
        if self.db_name:
            parts.append(self.quote_identifier(self.db_name))
        parts.append(self.quote_identifier(table.schema or self.default_schema))
        parts.append(self.quote_identifier(table.name))
        return ".".join(parts)

    @property
    def like_special_chars(self) -> str:
        # [...] character classes are LIKE wildcards in T-SQL
        return "%_["

    def paginate(self, sql: str, limit: int, offset: int, has_order_by: bool) -> str:
        """OFFSET/FETCH paging; SQL Server requires an ORDER BY for it."""
        limit = _validate_count(limit, "limit")
        offset = _validate_count(offset, "offset")
        if not has_order_by:
            sql = f"{sql} ORDER BY (SELECT NULL)"
        return f"{sql} OFFSET {offset} ROWS FETCH NEXT {limit} ROWS ONLY"

    def get_table_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> List[ColumnDescriptor]:
        """Get columns using sys.columns."""
        schema = schema_name or self.default_schema
        catalog = f"{self.quote_identifier(self.db_name)}." if self.db_name else ""

        rows = self._execute_all(f"""
            SELECT c.name, t.name AS type_name, c.is_nullable,
                   CASE WHEN t.name IN ('nvarchar', 'nchar') AND c.max_length > 0
                        THEN c.max_length / 2
                        WHEN c.precision > 0 THEN c.precision
                        ELSE NULLIF(c.max_length, -1) END,
                   c.scale,
                   CASE WHEN c.default_object_id <> 0 THEN 1 ELSE 0 END,
                   CASE WHEN c.is_identity = 1 OR c.is_computed = 1 THEN 1 ELSE 0 END,
                   CASE WHEN EXISTS (
                       SELECT 1 FROM {catalog}sys.index_columns ic
                       JOIN {catalog}sys.indexes i
                         ON ic.object_id = i.object_id AND ic.index_id = i.index_id
                       WHERE i.is_primary_key = 1
                         AND ic.object_id = c.object_id AND ic.column_id = c.column_id
                   ) THEN 1 ELSE 0 END
            FROM {catalog}sys.columns c
            INNER JOIN {catalog}sys.objects o ON c.object_id = o.object_id
            INNER JOIN {catalog}sys.schemas s ON o.schema_id = s.schema_id
            INNER JOIN {catalog}sys.types t ON c.user_type_id = t.user_type_id
            WHERE o.name = ? AND s.name = ? AND o.type IN ('U', 'V')
            ORDER BY c.column_id
        """, (table_name, schema))

        return [
            ColumnDescriptor(
                name=row[0],
                source_type=row[1].upper(),
                display_type=display_type_for(row[1]),
                nullable=bool(row[2]),
                precision=row[3],
                scale=row[4] or None,
                has_default=bool(row[5]),
                read_only=bool(row[6]),
                is_primary_key=bool(row[7]),
            )
            for row in rows
        ]
