"""
Base Database Dialect - Abstract base class for database-specific SQL syntax

Dialects handle database-specific syntax differences such as:
- Identifier quoting ([brackets] vs "quotes" vs `backticks`)
- Parameter placeholders (? vs %s)
- Row paging (LIMIT/OFFSET vs OFFSET ... FETCH NEXT)
- System catalog queries for column metadata
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
import logging

from ..models import ColumnDescriptor, TableRef

logger = logging.getLogger(__name__)


class DatabaseDialect(ABC):
    """
    Abstract base class for database dialects.

    Each dialect knows how to:
    1. Quote/escape identifiers appropriately
    2. Render parameter placeholders and paging clauses
    3. Query system catalogs for column metadata

    Usage:
        dialect = DialectFactory.create("postgresql", connection)
        quoted = dialect.quote_table(TableRef("users", "public"))
        columns = dialect.get_table_columns("users", "public")
    """

    name = "generic"

    def __init__(self, connection: Any = None, db_name: Optional[str] = None):
        """
        Initialize the dialect.

        Args:
            connection: Optional DB-API connection, needed for catalog queries only
            db_name: Optional target database name (for multi-db servers like SQL Server)
        """
        self.connection = connection
        self.db_name = db_name

    # ==================== Identifier Quoting ====================

    @property
    @abstractmethod
    def quote_char(self) -> str:
        """Character used to quote identifiers (e.g., '"' or '[')."""
        pass

    @property
    def quote_char_end(self) -> str:
        """Closing quote character (same as quote_char for most databases)."""
        return self.quote_char

    def quote_identifier(self, identifier: str) -> str:
        """Quote a single identifier, doubling any embedded closing quote."""
        end = self.quote_char_end
        escaped = identifier.replace(end, end + end)
        return f"{self.quote_char}{escaped}{end}"

    def quote_table(self, table: TableRef) -> str:
        """
        Quote a full table reference including optional schema.

        Args:
            table: Table reference (name already validated)

        Returns:
            Fully qualified and quoted table name
        """
        schema = table.schema or self.default_schema
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table.name)}"
        return self.quote_identifier(table.name)

    # ==================== Default Schema ====================

    @property
    def default_schema(self) -> str:
        """Default schema name for this database type."""
        return ""

    # ==================== Parameters / Paging ====================

    @property
    def placeholder(self) -> str:
        """Positional parameter placeholder (DB-API qmark style by default)."""
        return "?"

    @property
    def like_special_chars(self) -> str:
        """Characters with wildcard meaning inside a LIKE pattern."""
        return "%_"

    def paginate(self, sql: str, limit: int, offset: int, has_order_by: bool) -> str:
        """
        Append a paging clause to a SELECT statement.

        limit and offset are validated integers rendered into the SQL text;
        they are never user-supplied strings.
        """
        limit = _validate_count(limit, "limit")
        offset = _validate_count(offset, "offset")
        return f"{sql} LIMIT {limit} OFFSET {offset}"

    # ==================== Column Retrieval ====================

    @abstractmethod
    def get_table_columns(
        self,
        table_name: str,
        schema_name: Optional[str] = None
    ) -> List[ColumnDescriptor]:
        """
        Get column metadata for a table or view.

        Args:
            table_name: Table or view name
            schema_name: Optional schema name

        Returns:
            List of ColumnDescriptor objects in ordinal order
        """
        pass

    # ==================== Utility Methods ====================

    def _execute_all(self, query: str, params: tuple = ()) -> List[tuple]:
        """Execute query and return all rows."""
        if self.connection is None:
            raise RuntimeError(f"{type(self).__name__} has no connection for catalog queries")
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        finally:
            cursor.close()


def _validate_count(value: int, context: str) -> int:
    """Ensure only non-negative integers reach the paging clause."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"Invalid {context}: must be a non-negative integer")
    return value
