"""
Dialect Factory - Create appropriate dialect based on database type
"""

from typing import Any, Optional, Type, Dict
from .base import DatabaseDialect
from ...errors import UnsupportedDialect

import logging
logger = logging.getLogger(__name__)


class DialectFactory:
    """
    Factory for creating database dialects.

    Usage:
        dialect = DialectFactory.create("sqlite")
        builder = QueryBuilder(schema, dialect)
    """

    # Registry of supported database types
    _dialects: Dict[str, Type[DatabaseDialect]] = {}

    @classmethod
    def create(
        cls,
        db_type: str,
        connection: Any = None,
        db_name: Optional[str] = None
    ) -> DatabaseDialect:
        """
        Create a dialect for the specified database type.

        Args:
            db_type: Database type (sqlite, sqlserver, postgresql, mysql)
            connection: Optional database connection object (catalog queries)
            db_name: Optional target database name

        Returns:
            DatabaseDialect instance

        Raises:
            UnsupportedDialect: If no dialect is registered for db_type
        """
        db_type_lower = db_type.lower()

        dialect_class = cls._dialects.get(db_type_lower)
        if dialect_class is None:
            logger.warning(f"No dialect for database type: {db_type}")
            raise UnsupportedDialect(
                f"Unsupported database type '{db_type}' "
                f"(supported: {', '.join(sorted(cls._dialects))})"
            )

        return dialect_class(connection, db_name)

    @classmethod
    def is_supported(cls, db_type: str) -> bool:
        """Check if a database type is supported."""
        return db_type.lower() in cls._dialects

    @classmethod
    def supported_types(cls) -> list:
        """Get list of supported database types."""
        return list(cls._dialects.keys())

    @classmethod
    def register(cls, db_type: str, dialect_class: Type[DatabaseDialect]):
        """
        Register a new dialect type.

        Args:
            db_type: Database type identifier
            dialect_class: DatabaseDialect subclass
        """
        cls._dialects[db_type.lower()] = dialect_class
        logger.debug(f"Registered dialect for: {db_type}")


def _register_default_dialects():
    """Register built-in dialects. Called on module import."""
    from .sqlite_dialect import SQLiteDialect
    from .sqlserver_dialect import SQLServerDialect
    from .postgresql_dialect import PostgreSQLDialect
    from .mysql_dialect import MySQLDialect

    DialectFactory.register("sqlite", SQLiteDialect)
    DialectFactory.register("sqlserver", SQLServerDialect)
    DialectFactory.register("postgresql", PostgreSQLDialect)
    DialectFactory.register("postgres", PostgreSQLDialect)  # Alias
    DialectFactory.register("mysql", MySQLDialect)
    DialectFactory.register("mariadb", MySQLDialect)  # Alias


# Register on module import
_register_default_dialects()
