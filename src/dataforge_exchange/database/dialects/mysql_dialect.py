"""
MySQL Dialect - MySQL-specific SQL operations
"""

from typing import List, Optional
from .base import DatabaseDialect
from ..models import ColumnDescriptor, display_type_for

import logging
logger = logging.getLogger(__name__)


class MySQLDialect(DatabaseDialect):
    """Dialect for MySQL/MariaDB databases."""

    name = "mysql"

    @property
    def quote_char(self) -> str:
        """MySQL uses backticks for identifier quoting."""
        return '`'

    @property
    def default_schema(self) -> str:
        """MySQL uses database name as schema."""
        return self.db_name or ""

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
            SELECT COLUMN_NAME, DATA_TYPE, IS_NULLABLE,
                   COALESCE(CHARACTER_MAXIMUM_LENGTH, NUMERIC_PRECISION),
                   NUMERIC_SCALE, COLUMN_DEFAULT, EXTRA, COLUMN_KEY, COLUMN_TYPE
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
            ORDER BY ORDINAL_POSITION
        """, (schema, table_name))

        columns = []
        for row in rows:
            extra = (row[6] or "").lower()
            # TINYINT(1) is MySQL's boolean
            type_name = "BOOLEAN" if (row[8] or "").lower() == "tinyint(1)" else (row[1] or "UNKNOWN").upper()
            columns.append(ColumnDescriptor(
                name=row[0],
                source_type=type_name,
                display_type=display_type_for(type_name),
                nullable=(row[2] == 'YES'),
                precision=row[3],
                scale=row[4],
                has_default=row[5] is not None or "auto_increment" in extra,
                read_only="generated" in extra,
                is_primary_key=(row[7] == 'PRI'),
            ))
        return columns
