"""
PostgreSQL Dialect - PostgreSQL-specific SQL operations
"""

from typing import List, Optional
from .base import DatabaseDialect
from ..models import ColumnDescriptor, display_type_for

import logging
logger = logging.getLogger(__name__)


class PostgreSQLDialect(DatabaseDialect):
    """Dialect for PostgreSQL databases (psycopg2 driver, format paramstyle)."""

    name = "postgresql"

    @property
    def quote_char(self) -> str:
        return '"'

    @property
    def default_schema(self) -> str:
        return "public"

    @property
    def placeholder(self) -> str:
        return "%s"

    def get_table_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> List[ColumnDescriptor]:
        """Get columns using information_schema."""
        schema = schema_name or self.default_schema

        rows = self._execute_all("""
            SELECT c.column_name, c.data_type, c.is_nullable,
                   COALESCE(c.character_maximum_length, c.numeric_precision),
                   c.numeric_scale,
                   c.column_default IS NOT NULL,
                   c.is_identity = 'YES' OR c.is_generated = 'ALWAYS',
                   EXISTS (
                       SELECT 1
                       FROM information_schema.table_constraints tc
                       JOIN information_schema.key_column_usage k
                         ON tc.constraint_name = k.constraint_name
                        AND tc.table_schema = k.table_schema
                       WHERE tc.constraint_type = 'PRIMARY KEY'
                         AND k.table_schema = c.table_schema
                         AND k.table_name = c.table_name
                         AND k.column_name = c.column_name
                   )
            FROM information_schema.columns c
            WHERE c.table_schema = %s AND c.table_name = %s
            ORDER BY c.ordinal_position
        """, (schema, table_name))

        return [
            ColumnDescriptor(
                name=row[0],
                source_type=row[1].upper(),
                display_type=display_type_for(row[1]),
                nullable=(row[2] == 'YES'),
                precision=row[3],
                scale=row[4],
                has_default=bool(row[5]),
                read_only=bool(row[6]),
                is_primary_key=bool(row[7]),
            )
            for row in rows
        ]
