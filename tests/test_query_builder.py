"""
Unit tests for the parameterized query builder.
"""
import logging

import pytest

from dataforge_exchange.database import DialectFactory, TableRef
from dataforge_exchange.errors import InvalidColumn, InvalidIdentifier, InvalidOperator, QueryBuildError
from dataforge_exchange.query import (
    BuiltQuery,
    FilterCriterion,
    FilterOperator,
    PageRequest,
    QueryBuilder,
    SortDirection,
    SortSpec,
    build_query,
)


@pytest.fixture
def builder(customers_schema, sqlite_dialect):
    return QueryBuilder(customers_schema, sqlite_dialect)


class TestSelect:
    """SELECT construction."""

    def test_full_query(self, builder):
        query = builder.build(
            "customers",
            columns=["id", "name"],
            filters=[FilterCriterion("name", FilterOperator.STARTS_WITH, "John*")],
            sort=SortSpec("name", SortDirection.DESC),
            page=PageRequest(page=2, page_size=50),
        )

        assert query.query_text == (
            'SELECT "id", "name" FROM "customers" '
            "WHERE \"name\" LIKE ? ESCAPE '!' "
            'ORDER BY "name" DESC LIMIT 50 OFFSET 50'
        )
        assert query.parameters == ("John%",)

    def test_all_columns_by_default(self, builder, customers_schema):
        query = builder.build("customers")
        for name in customers_schema.column_names:
            assert f'"{name}"' in query.query_text
        assert "WHERE" not in query.query_text
        assert query.parameters == ()

    def test_empty_filter_list_has_no_where(self, builder):
        query = builder.build("customers", filters=[])
        assert "WHERE" not in query.query_text

    def test_filters_combined_with_and_in_order(self, builder):
        query = builder.build("customers", filters=[
            FilterCriterion("name", "contains", "ann"),
            FilterCriterion("balance", "gt", 100),
            FilterCriterion("id", "lt", 50),
        ])
        assert 'WHERE "name" LIKE ? ESCAPE \'!\' AND "balance" > ? AND "id" < ?' in query.query_text
        assert query.parameters == ("%ann%", 100, 50)

    def test_schema_qualified_table(self, customers_schema):
        builder = QueryBuilder(customers_schema, DialectFactory.create("postgresql"))
        query = builder.build(TableRef("customers", "sales"), columns=["id"])
        assert query.query_text == 'SELECT "id" FROM "sales"."customers"'

    def test_invalid_table_name_rejected(self, builder):
        with pytest.raises(InvalidIdentifier):
            builder.build("customers; DROP TABLE x")

    def test_stable_order_appends_primary_key(self, builder):
        query = builder.build("customers", sort=SortSpec("name"), stable=True)
        assert query.query_text.endswith('ORDER BY "name" ASC, "id" ASC')

    def test_stable_order_without_sort_uses_primary_key(self, builder):
        query = builder.build("customers", page=PageRequest(1, 10), stable=True)
        assert 'ORDER BY "id" ASC LIMIT 10 OFFSET 0' in query.query_text


class TestFilterTranslation:
    """Operator -> SQL template mapping."""

    @pytest.mark.parametrize("operator,value,expected", [
        ("contains", "ann", "%ann%"),
        ("startsWith", "ann", "ann%"),
        ("endsWith", "ann", "%ann"),
        ("startsWith", "John*", "John%"),
        ("endsWith", "*smith", "%smith"),
        ("contains", "J?hn", "%J_hn%"),
        ("contains", "  ann  ", "%ann%"),
    ])
    def test_pattern_parameters(self, builder, operator, value, expected):
        query = builder.build("customers", filters=[FilterCriterion("name", operator, value)])
        assert query.parameters == (expected,)
        assert "LIKE ?" in query.query_text

    def test_literal_like_characters_are_escaped(self, builder):
        query = builder.build("customers", filters=[FilterCriterion("name", "contains", "50%_off!")])
        assert query.parameters == ("%50!%!_off!!%",)

    @pytest.mark.parametrize("operator,sql", [
        ("equals", '"name" = ?'),
        ("notEquals", '"name" <> ?'),
        ("gt", '"name" > ?'),
        ("lt", '"name" < ?'),
    ])
    def test_comparison_operators(self, builder, operator, sql):
        query = builder.build("customers", filters=[FilterCriterion("name", operator, "x*")])
        assert sql in query.query_text
        # Comparison values are passed unchanged
        assert query.parameters == ("x*",)

    def test_is_empty_on_text_column(self, builder):
        query = builder.build("customers", filters=[FilterCriterion("email", "isEmpty")])
        assert "(\"email\" IS NULL OR \"email\" = '')" in query.query_text
        assert query.parameters == ()

    def test_is_not_empty_on_text_column(self, builder):
        query = builder.build("customers", filters=[FilterCriterion("email", "isNotEmpty")])
        assert "(\"email\" IS NOT NULL AND \"email\" <> '')" in query.query_text

    def test_is_empty_on_numeric_column(self, builder):
        query = builder.build("customers", filters=[FilterCriterion("balance", "isEmpty")])
        assert 'WHERE "balance" IS NULL' in query.query_text

    def test_blank_pattern_value_skips_criterion(self, builder):
        query = builder.build("customers", filters=[FilterCriterion("name", "contains", "   ")])
        assert "WHERE" not in query.query_text
        assert query.parameters == ()

    def test_missing_value_rejected(self, builder):
        with pytest.raises(QueryBuildError):
            builder.build("customers", filters=[FilterCriterion("name", "equals", None)])

    def test_unknown_operator_rejected(self):
        with pytest.raises(InvalidOperator):
            FilterCriterion("name", "like", "x")

    def test_every_operator_is_translated(self, builder):
        for operator in FilterOperator:
            value = None if not operator.takes_value else "v"
            query = builder.build("customers", filters=[FilterCriterion("name", operator, value)])
            assert "WHERE" in query.query_text


class TestInjectionSafety:
    """User values never reach the SQL text."""

    HOSTILE = "x'; DROP TABLE customers; --"

    @pytest.mark.parametrize("operator", [
        FilterOperator.CONTAINS, FilterOperator.EQUALS, FilterOperator.GT, FilterOperator.NOT_EQUALS,
    ])
    def test_values_are_parameters(self, builder, operator):
        query = builder.build("customers", filters=[FilterCriterion("name", operator, self.HOSTILE)])
        assert "DROP" not in query.query_text
        assert any(self.HOSTILE.strip() in str(p) for p in query.parameters)

    def test_unknown_filter_column_rejected(self, builder):
        with pytest.raises(InvalidColumn) as exc_info:
            builder.build("customers", filters=[FilterCriterion("name\" OR 1=1 --", "equals", "x")])
        assert exc_info.value.table == "customers"

    def test_unknown_select_column_rejected(self, builder):
        with pytest.raises(InvalidColumn):
            builder.build("customers", columns=["id", "password"])

    def test_unknown_sort_column_rejected(self, builder):
        with pytest.raises(InvalidColumn):
            builder.build("customers", sort=SortSpec("nope"))

    def test_repr_hides_parameter_values(self, builder):
        query = builder.build("customers", filters=[FilterCriterion("name", "equals", "secret-value")])
        assert "secret-value" not in repr(query)
        assert "<1 values>" in repr(query)

    def test_debug_log_has_no_values(self, builder, caplog):
        with caplog.at_level(logging.DEBUG, logger="dataforge_exchange.query.builder"):
            builder.build("customers", filters=[FilterCriterion("name", "equals", "secret-value")])
        assert caplog.records
        assert "secret-value" not in caplog.text


class TestCount:
    def test_count_uses_same_where_clause(self, builder):
        filters = [FilterCriterion("name", "startsWith", "A")]
        count = builder.build_count("customers", filters)
        select = builder.build("customers", filters=filters)

        assert count.query_text.startswith('SELECT COUNT(*) AS total FROM "customers"')
        assert count.query_text.endswith("WHERE \"name\" LIKE ? ESCAPE '!'")
        assert count.parameters == select.parameters == ("A%",)

    def test_count_rejects_unknown_filter_column(self, builder):
        with pytest.raises(InvalidColumn):
            builder.build_count("customers", [FilterCriterion("ghost", "equals", 1)])


class TestRowWrites:
    """INSERT / UPDATE / DELETE keyed by primary key."""

    def test_insert(self, builder):
        query = builder.build_insert("customers", {"name": "Ann", "email": "ann@example.com"})
        assert query.query_text == 'INSERT INTO "customers" ("name", "email") VALUES (?, ?)'
        assert query.parameters == ("Ann", "ann@example.com")

    def test_update(self, builder):
        query = builder.build_update("customers", {"name": "Ann", "balance": "10.00"}, {"id": 7})
        assert query.query_text == 'UPDATE "customers" SET "name" = ?, "balance" = ? WHERE "id" = ?'
        assert query.parameters == ("Ann", "10.00", 7)

    def test_delete(self, builder):
        query = builder.build_delete("customers", {"id": 7})
        assert query.query_text == 'DELETE FROM "customers" WHERE "id" = ?'
        assert query.parameters == (7,)

    def test_empty_key_rejected(self, builder):
        with pytest.raises(ValueError):
            builder.build_delete("customers", {})

    def test_null_key_rejected(self, builder):
        with pytest.raises(ValueError):
            builder.build_update("customers", {"name": "x"}, {"id": None})

    def test_unknown_key_column_rejected(self, builder):
        with pytest.raises(InvalidColumn):
            builder.build_delete("customers", {"uuid": 1})

    def test_unknown_value_column_rejected(self, builder):
        with pytest.raises(InvalidColumn):
            builder.build_insert("customers", {"nickname": "x"})

    def test_read_only_column_rejected(self, customers_schema, sqlite_dialect):
        from dataforge_exchange.database import ColumnDescriptor, TableSchema

        schema = TableSchema("t", customers_schema.columns + (
            ColumnDescriptor("total", "INTEGER", read_only=True),
        ))
        with pytest.raises(InvalidColumn, match="read-only"):
            QueryBuilder(schema, sqlite_dialect).build_insert("t", {"total": 1})

    def test_postgresql_placeholders(self, customers_schema):
        builder = QueryBuilder(customers_schema, DialectFactory.create("postgresql"))
        query = builder.build_insert("customers", {"name": "Ann", "email": None})
        assert query.query_text == 'INSERT INTO "public"."customers" ("name", "email") VALUES (%s, %s)'
        assert query.parameters == ("Ann", None)


class TestBuildQueryFunction:
    def test_module_level_wrapper(self, customers_schema, sqlite_dialect):
        query = build_query(
            customers_schema, sqlite_dialect, "customers",
            columns=["id"], page=PageRequest(1, 25),
        )
        assert isinstance(query, BuiltQuery)
        assert query.query_text == 'SELECT "id" FROM "customers" LIMIT 25 OFFSET 0'

class TestTableMatchesSchema:
    """The table argument must be the table the schema describes."""

    @pytest.mark.parametrize("call", [
        lambda b: b.build("orders", filters=[FilterCriterion("email", "equals", "x")]),
        lambda b: b.build_count("orders"),
        lambda b: b.build_insert("orders", {"name": "Ann"}),
        lambda b: b.build_update("orders", {"name": "Ann"}, {"id": 1}),
        lambda b: b.build_delete(TableRef("orders"), {"id": 1}),
    ])
    def test_other_table_rejected(self, builder, call):
        with pytest.raises(InvalidIdentifier, match="orders"):
            call(builder)

    def test_build_query_rejects_other_table(self, customers_schema, sqlite_dialect):
        with pytest.raises(InvalidIdentifier):
            build_query(customers_schema, sqlite_dialect, "orders", columns=["id"])

    def test_name_match_ignores_case(self, builder):
        assert builder.build_count("Customers").query_text == 'SELECT COUNT(*) AS total FROM "Customers"'

    def test_qualified_schema_requires_same_qualifier(self, customers_schema, sqlite_dialect):
        from dataforge_exchange.database import TableSchema

        schema = TableSchema("sales.customers", customers_schema.columns)
        builder = QueryBuilder(schema, sqlite_dialect)

        assert builder.build_count("sales.customers").query_text.endswith('"sales"."customers"')
        with pytest.raises(InvalidIdentifier):
            builder.build_count("customers")
        with pytest.raises(InvalidIdentifier):
            builder.build_count("archive.customers")
