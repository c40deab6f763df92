"""
End-to-end: export a SQLite table to CSV/xlsx and import the file back.
"""
import pytest

from dataforge_exchange import (
    ExportFormat,
    ExportJob,
    FileParser,
    ParseHints,
    export_table,
    import_rows,
)

SELECT_ALL = "SELECT id, name, email, active, balance, joined, updated_at FROM customers ORDER BY id"


async def export_and_reimport(conn, source, provider, dialect, job, hints):
    before = conn.execute(SELECT_ALL).fetchall()
    artifact = await export_table(source, provider, dialect, "customers", job=job)

    conn.execute("DELETE FROM customers")
    conn.commit()

    parsed = FileParser().parse(artifact.content, hints)
    result = await import_rows(source, provider, dialect, "customers", parsed)
    after = conn.execute(SELECT_ALL).fetchall()
    return before, after, result


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_csv(self, sqlite_conn, sqlite_source, sqlite_provider, sqlite_dialect, seed_customers):
        seed_customers(25)
        sqlite_conn.execute("UPDATE customers SET updated_at = '2024-05-01 08:30:00' WHERE id = 3")
        sqlite_conn.execute("UPDATE customers SET name = 'Smith, \"JJ\"' WHERE id = 4")
        sqlite_conn.commit()

        before, after, result = await export_and_reimport(
            sqlite_conn, sqlite_source, sqlite_provider, sqlite_dialect,
            ExportJob(chunk_size=10), ParseHints(file_name="customers.csv"),
        )

        assert result.success, result.errors
        assert result.rows_imported == 25
        assert after == before

    @pytest.mark.asyncio
    async def test_spreadsheet(self, sqlite_conn, sqlite_source, sqlite_provider, sqlite_dialect, seed_customers):
        seed_customers(12)

        before, after, result = await export_and_reimport(
            sqlite_conn, sqlite_source, sqlite_provider, sqlite_dialect,
            ExportJob(format=ExportFormat.SPREADSHEET, chunk_size=5), ParseHints(has_header=True),
        )

        assert result.success, result.errors
        assert after == before

    @pytest.mark.asyncio
    async def test_real_values_survive_csv(self, sqlite_conn, sqlite_source, sqlite_provider, sqlite_dialect):
        sqlite_conn.execute("CREATE TABLE measurements (id INTEGER PRIMARY KEY, ratio REAL NOT NULL)")
        sqlite_conn.executemany(
            "INSERT INTO measurements (id, ratio) VALUES (?, ?)",
            [(1, 1e-05), (2, 2.5e20), (3, 0.1), (4, -3.75e-12)],
        )
        sqlite_conn.commit()
        select = "SELECT id, ratio FROM measurements ORDER BY id"
        before = sqlite_conn.execute(select).fetchall()

        artifact = await export_table(sqlite_source, sqlite_provider, sqlite_dialect, "measurements")
        assert b"e-" not in artifact.content and b"e+" not in artifact.content

        sqlite_conn.execute("DELETE FROM measurements")
        sqlite_conn.commit()
        parsed = FileParser().parse(artifact.content, ParseHints(file_name="measurements.csv", has_header=True))
        result = await import_rows(sqlite_source, sqlite_provider, sqlite_dialect, "measurements", parsed)

        assert result.success, result.errors
        assert sqlite_conn.execute(select).fetchall() == before
