"""
Row Source - boundary to the client that executes built queries.

The engine only depends on the RowSource protocol. DbApiRowSource is a
reference implementation over any DB-API 2.0 connection (sqlite3, psycopg2,
pyodbc); blocking driver calls run in a worker thread so the pipelines can
await them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol, Tuple, runtime_checkable

from ..errors import WriteError
from ..query.models import BuiltQuery
from ..utils.error_handler import describe_write_error
from ..utils.sql_formatter import format_for_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryResult:
    """Rows returned by a SELECT, in column order."""
    rows: Tuple[tuple, ...]
    column_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a single INSERT/UPDATE/DELETE."""
    affected_rows: int


@runtime_checkable
class RowSource(Protocol):
    """Executes built queries against the remote table."""

    async def execute(self, query: BuiltQuery) -> QueryResult:
        """Run a read query and return its rows."""
        ...

    async def execute_write(self, query: BuiltQuery) -> WriteResult:
        """
        Run a single write statement.

        Raises:
            WriteError: When the server rejects the row (constraint, type, ...)
        """
        ...


class DbApiRowSource:
    """
    RowSource backed by a DB-API 2.0 connection.

    Each write is committed on its own; a failed write is rolled back and
    surfaced as a WriteError so one bad row never poisons the next one.

    Usage:
        conn = sqlite3.connect(path, check_same_thread=False)
        source = DbApiRowSource(conn)
        result = await source.execute(built_query)
    """

    def __init__(self, connection: Any, autocommit: bool = True, db_type: str = ""):
        """
        Args:
            connection: Open DB-API connection. sqlite3 connections must be
                created with check_same_thread=False.
            autocommit: Commit after each successful write
            db_type: Database type used to pick driver error patterns
        """
        self.connection = connection
        self.autocommit = autocommit
        self.db_type = db_type
        self._lock = asyncio.Lock()
        self._driver_error = getattr(connection, "Error", Exception)

    async def execute(self, query: BuiltQuery) -> QueryResult:
        async with self._lock:
            return await asyncio.to_thread(self._execute_sync, query)

    async def execute_write(self, query: BuiltQuery) -> WriteResult:
        async with self._lock:
            return await asyncio.to_thread(self._execute_write_sync, query)

    def _execute_sync(self, query: BuiltQuery) -> QueryResult:
        logger.debug(f"Executing query ({len(query.parameters)} params):\n{format_for_log(query.query_text)}")
        cursor = self.connection.cursor()
        try:
            cursor.execute(query.query_text, query.parameters)
            rows = tuple(tuple(row) for row in cursor.fetchall())
            names = tuple(d[0] for d in (cursor.description or ()))
            return QueryResult(rows=rows, column_names=names)
        finally:
            cursor.close()

    def _execute_write_sync(self, query: BuiltQuery) -> WriteResult:
        cursor = self.connection.cursor()
        try:
            cursor.execute(query.query_text, query.parameters)
            affected = cursor.rowcount if cursor.rowcount is not None else -1
            if self.autocommit:
                self.connection.commit()
            return WriteResult(affected_rows=affected)
        except self._driver_error as e:
            self._rollback()
            info = describe_write_error(e, self.db_type)
            logger.debug(f"Write rejected [{info.code.value}]: {info.original_error}")
            raise WriteError(info.message, code=info.code.value, recoverable=info.recoverable) from e
        finally:
            cursor.close()

    def _rollback(self):
        try:
            self.connection.rollback()
        except self._driver_error as e:
            logger.warning(f"Rollback after failed write also failed: {e}")

