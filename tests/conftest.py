"""
Pytest configuration and fixtures for DataForge Exchange tests.
"""
import sqlite3
from unittest.mock import AsyncMock

import pytest

from dataforge_exchange.database import (
    ColumnDescriptor,
    DbApiRowSource,
    DialectFactory,
    DialectSchemaProvider,
    DisplayType,
    StaticSchemaProvider,
    TableSchema,
)
from dataforge_exchange.database.row_source import QueryResult, WriteResult


@pytest.fixture
def customers_schema():
    """Typical table: auto id, required name, optional typed columns."""
    return TableSchema(
        table_name="customers",
        columns=(
            ColumnDescriptor("id", "INTEGER", DisplayType.INTEGER, nullable=False,
                             has_default=True, is_primary_key=True),
            ColumnDescriptor("name", "VARCHAR(100)", DisplayType.TEXT, nullable=False, precision=100),
            ColumnDescriptor("email", "VARCHAR(255)", DisplayType.TEXT, precision=255),
            ColumnDescriptor("active", "BOOLEAN", DisplayType.BOOLEAN),
            ColumnDescriptor("balance", "DECIMAL(10,2)", DisplayType.DECIMAL, precision=10, scale=2),
            ColumnDescriptor("joined", "DATE", DisplayType.DATE),
            ColumnDescriptor("updated_at", "TIMESTAMP", DisplayType.TIMESTAMP),
        ),
    )


@pytest.fixture
def sqlite_dialect():
    return DialectFactory.create("sqlite")


@pytest.fixture
def static_provider(customers_schema):
    return StaticSchemaProvider([customers_schema])


@pytest.fixture
def mock_row_source():
    """Row source double: execute/execute_write are AsyncMocks."""
    source = AsyncMock()
    source.execute.return_value = QueryResult(rows=((0,),))
    source.execute_write.return_value = WriteResult(affected_rows=1)
    return source


@pytest.fixture
def sqlite_conn():
    """In-memory database shared with worker threads."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.execute("""
        CREATE TABLE customers (
            id INTEGER PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            email VARCHAR(255) CHECK (email IS NULL OR email LIKE '%_@_%'),
            active BOOLEAN,
            balance DECIMAL(10,2),
            joined DATE,
            updated_at TIMESTAMP
        )
    """)
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture
def sqlite_source(sqlite_conn):
    return DbApiRowSource(sqlite_conn, db_type="sqlite")


@pytest.fixture
def sqlite_provider(sqlite_conn):
    return DialectSchemaProvider(DialectFactory.create("sqlite", sqlite_conn))


@pytest.fixture
def seed_customers(sqlite_conn):
    """Insert count generated customers with ids start..start+count-1."""
    def _seed(count, start=1):
        sqlite_conn.executemany(
            "INSERT INTO customers (id, name, email, active, balance, joined) VALUES (?, ?, ?, ?, ?, ?)",
            [
                (i, f"Customer {i}", f"c{i}@example.com", i % 2, f"{i}.50", "2024-01-15")
                for i in range(start, start + count)
            ],
        )
        sqlite_conn.commit()
    return _seed
