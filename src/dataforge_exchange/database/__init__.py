"""
Database boundary - table metadata, SQL dialects, row sources and schema providers.
"""

from .models import ColumnDescriptor, DisplayType, TableRef, TableSchema, display_type_for
from .dialects import DatabaseDialect, DialectFactory
from .row_source import DbApiRowSource, QueryResult, RowSource, WriteResult
from .schema import DialectSchemaProvider, SchemaProvider, StaticSchemaProvider, as_table_ref

__all__ = [
    "ColumnDescriptor",
    "DisplayType",
    "TableRef",
    "TableSchema",
    "display_type_for",
    "DatabaseDialect",
    "DialectFactory",
    "DbApiRowSource",
    "QueryResult",
    "RowSource",
    "WriteResult",
    "DialectSchemaProvider",
    "SchemaProvider",
    "StaticSchemaProvider",
    "as_table_ref",
]
