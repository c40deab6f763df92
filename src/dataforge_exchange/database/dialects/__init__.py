"""
Database Dialects - Database-specific SQL syntax

This module provides a factory pattern for handling database-specific SQL syntax
(identifier quoting, parameter placeholders, paging) used by the query builder.

Usage:
    from dataforge_exchange.database.dialects import DialectFactory

    # Create a dialect (connection only needed for catalog queries)
    dialect = DialectFactory.create("postgresql")

    dialect.quote_identifier("order")        # '"order"'
    dialect.placeholder                      # '%s'
    dialect.paginate("SELECT ...", 50, 100, has_order_by=True)
"""

from .base import DatabaseDialect
from .factory import DialectFactory

from .sqlite_dialect import SQLiteDialect
from .sqlserver_dialect import SQLServerDialect
from .postgresql_dialect import PostgreSQLDialect
from .mysql_dialect import MySQLDialect

__all__ = [
    # Base classes
    "DatabaseDialect",

    # Factory
    "DialectFactory",

    # Implementations
    "SQLiteDialect",
    "SQLServerDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
]
