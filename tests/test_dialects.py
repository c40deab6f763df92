"""
Tests for the SQL dialects and the dialect factory.
"""
import pytest

from dataforge_exchange.database import DisplayType, TableRef, display_type_for
from dataforge_exchange.database.dialects import (
    DatabaseDialect,
    DialectFactory,
    MySQLDialect,
    PostgreSQLDialect,
    SQLiteDialect,
    SQLServerDialect,
)
from dataforge_exchange.errors import InvalidIdentifier, UnsupportedDialect
from dataforge_exchange.query import PageRequest, QueryBuilder, SortSpec


class TestDialectFactory:
    @pytest.mark.parametrize("db_type,cls", [
        ("sqlite", SQLiteDialect),
        ("SQLite", SQLiteDialect),
        ("postgresql", PostgreSQLDialect),
        ("postgres", PostgreSQLDialect),
        ("sqlserver", SQLServerDialect),
        ("mysql", MySQLDialect),
        ("mariadb", MySQLDialect),
    ])
    def test_create(self, db_type, cls):
        assert isinstance(DialectFactory.create(db_type), cls)

    def test_unsupported(self):
        assert not DialectFactory.is_supported("oracle")
        with pytest.raises(UnsupportedDialect, match="oracle"):
            DialectFactory.create("oracle")

    def test_register_custom_dialect(self):
        class DuckDialect(SQLiteDialect):
            name = "duck"

        DialectFactory.register("duck", DuckDialect)
        try:
            assert isinstance(DialectFactory.create("duck"), DuckDialect)
            assert "duck" in DialectFactory.supported_types()
        finally:
            DialectFactory._dialects.pop("duck")


class TestQuoting:
    def test_embedded_quote_doubled(self):
        assert SQLiteDialect().quote_identifier('we"ird') == '"we""ird"'
        assert SQLServerDialect().quote_identifier("a]b") == "[a]]b]"
        assert MySQLDialect().quote_identifier("a`b") == "`a``b`"

    def test_table_quoting(self):
        assert SQLiteDialect().quote_table(TableRef("orders")) == '"orders"'
        assert PostgreSQLDialect().quote_table(TableRef("orders")) == '"public"."orders"'
        assert SQLServerDialect().quote_table(TableRef("orders", "sales")) == "[sales].[orders]"
        assert SQLServerDialect(db_name="shop").quote_table(TableRef("orders")) == "[shop].[dbo].[orders]"
        assert MySQLDialect(db_name="shop").quote_table(TableRef("orders")) == "`shop`.`orders`"

    @pytest.mark.parametrize("name", ["", "   ", "a b", "x;y", "1abc", "t--"])
    def test_invalid_identifiers(self, name):
        with pytest.raises(InvalidIdentifier):
            TableRef(name)

    def test_parse_qualified(self):
        assert TableRef.parse("sales.orders") == TableRef("orders", "sales")
        assert TableRef.parse("orders").schema is None


class TestPaging:
    def test_limit_offset(self):
        assert PostgreSQLDialect().paginate("SELECT 1", 10, 20, True) == "SELECT 1 LIMIT 10 OFFSET 20"

    def test_sqlserver_offset_fetch(self, customers_schema):
        builder = QueryBuilder(customers_schema, DialectFactory.create("sqlserver"))

        query = builder.build("customers", columns=["id"], page=PageRequest(2, 25))
        assert query.query_text == (
            "SELECT [id] FROM [dbo].[customers] "
            "ORDER BY (SELECT NULL) OFFSET 25 ROWS FETCH NEXT 25 ROWS ONLY"
        )

        sorted_query = builder.build("customers", columns=["id"], sort=SortSpec("id"), page=PageRequest(1, 25))
        assert sorted_query.query_text.endswith("ORDER BY [id] ASC OFFSET 0 ROWS FETCH NEXT 25 ROWS ONLY")

    @pytest.mark.parametrize("limit,offset", [(-1, 0), (10, -1), ("10", 0), (True, 0)])
    def test_counts_validated(self, limit, offset):
        with pytest.raises(ValueError):
            SQLiteDialect().paginate("SELECT 1", limit, offset, False)

    def test_sqlserver_escapes_bracket_in_like(self, customers_schema):
        from dataforge_exchange.query import FilterCriterion

        builder = QueryBuilder(customers_schema, DialectFactory.create("sqlserver"))
        query = builder.build("customers", filters=[FilterCriterion("name", "contains", "[A]")])
        assert query.parameters == ("%![A]%",)


class TestPlaceholders:
    @pytest.mark.parametrize("db_type,placeholder", [
        ("sqlite", "?"), ("sqlserver", "?"), ("postgresql", "%s"), ("mysql", "%s"),
    ])
    def test_placeholder(self, db_type, placeholder):
        assert DialectFactory.create(db_type).placeholder == placeholder


class TestDisplayTypes:
    @pytest.mark.parametrize("source_type,expected", [
        ("BIT", DisplayType.BOOLEAN),
        ("boolean", DisplayType.BOOLEAN),
        ("BIGINT", DisplayType.INTEGER),
        ("serial", DisplayType.INTEGER),
        ("NUMERIC(10,2)", DisplayType.DECIMAL),
        ("money", DisplayType.DECIMAL),
        ("DATETIME2", DisplayType.TIMESTAMP),
        ("timestamp with time zone", DisplayType.TIMESTAMP),
        ("DATE", DisplayType.DATE),
        ("time without time zone", DisplayType.TIME),
        ("interval", DisplayType.TEXT),
        ("VARCHAR(50)", DisplayType.TEXT),
        ("", DisplayType.TEXT),
    ])
    def test_mapping(self, source_type, expected):
        assert display_type_for(source_type) is expected


class TestSqliteCatalog:
    def test_columns_from_pragma(self, sqlite_conn):
        dialect = DialectFactory.create("sqlite", sqlite_conn)
        columns = {c.name: c for c in dialect.get_table_columns("customers")}

        assert list(columns) == ["id", "name", "email", "active", "balance", "joined", "updated_at"]
        assert columns["id"].is_primary_key and columns["id"].has_default
        assert not columns["id"].is_required
        assert columns["name"].is_required
        assert columns["name"].precision == 100
        assert (columns["balance"].precision, columns["balance"].scale) == (10, 2)
        assert columns["active"].display_type is DisplayType.BOOLEAN
        assert columns["email"].nullable

    def test_catalog_needs_connection(self):
        with pytest.raises(RuntimeError):
            SQLiteDialect().get_table_columns("customers")

    def test_abstract_base(self):
        with pytest.raises(TypeError):
            DatabaseDialect()
