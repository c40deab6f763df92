"""
Schema providers - the authoritative ColumnDescriptor set per table.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Protocol, Union, runtime_checkable

from ..errors import InvalidIdentifier
from .dialects.base import DatabaseDialect
from .models import TableRef, TableSchema

logger = logging.getLogger(__name__)


@runtime_checkable
class SchemaProvider(Protocol):
    """Supplies table schemas to the query builder and the pipelines."""

    async def get_schema(self, table: TableRef) -> TableSchema:
        ...


def as_table_ref(table: Union[str, TableRef]) -> TableRef:
    """Accept either "schema.table" strings or TableRef objects."""
    return table if isinstance(table, TableRef) else TableRef.parse(table)


class StaticSchemaProvider:
    """In-memory schemas, keyed by qualified table name."""

    def __init__(self, schemas: Iterable[TableSchema] = ()):
        self._schemas: Dict[str, TableSchema] = {}
        for schema in schemas:
            self.add(schema)

    def add(self, schema: TableSchema):
        self._schemas[schema.table_name] = schema

    async def get_schema(self, table: TableRef) -> TableSchema:
        schema = self._schemas.get(table.qualified_name) or self._schemas.get(table.name)
        if schema is None:
            raise InvalidIdentifier(f"Unknown table: '{table.qualified_name}'")
        return schema


class DialectSchemaProvider:
    """
    Reads column metadata through a dialect's catalog queries.

    The dialect must have been created with a connection. Catalog queries
    run in a worker thread.
    """

    def __init__(self, dialect: DatabaseDialect):
        self.dialect = dialect

    async def get_schema(self, table: TableRef) -> TableSchema:
        columns = await asyncio.to_thread(
            self.dialect.get_table_columns, table.name, table.schema
        )
        if not columns:
            raise InvalidIdentifier(f"Table not found or has no columns: '{table.qualified_name}'")
        logger.debug(f"Loaded {len(columns)} columns for {table.qualified_name}")
        return TableSchema(table_name=table.qualified_name, columns=tuple(columns))
