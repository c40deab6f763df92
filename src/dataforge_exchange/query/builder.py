"""
Query Builder - structural descriptors to parameterized SQL.

SECURITY: user values only ever travel as parameters. Identifiers cannot be
parameterized, so every referenced column is checked against the table's
ColumnDescriptor set before any SQL text is produced, and table/schema
names must match the identifier pattern.

Usage:
    builder = QueryBuilder(schema, DialectFactory.create("sqlite"))
    query = builder.build(
        "customers",
        filters=[FilterCriterion("name", FilterOperator.STARTS_WITH, "John*")],
        sort=SortSpec("name", SortDirection.DESC),
        page=PageRequest(page=2, page_size=50),
    )
    # query.query_text -> SELECT ... WHERE "name" LIKE ? ESCAPE '!' ORDER BY ...
    # query.parameters -> ('John%',)
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union, assert_never

from ..database.dialects.base import DatabaseDialect
from ..database.models import ColumnDescriptor, DisplayType, TableRef, TableSchema
from ..errors import InvalidColumn, InvalidIdentifier, QueryBuildError
from ..utils.sql_formatter import format_for_log
from .models import BuiltQuery, FilterCriterion, FilterOperator, PageRequest, SortDirection, SortSpec

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "!"

TableArg = Union[str, TableRef]


class QueryBuilder:
    """
    Builds SELECT/COUNT/INSERT/UPDATE/DELETE statements for one table.

    The builder is a pure transformation: no I/O, no state between calls.
    """

    def __init__(self, schema: TableSchema, dialect: DatabaseDialect):
        self.schema = schema
        self.dialect = dialect

    # ==================== Read Queries ====================

    def build(
        self,
        table: TableArg,
        columns: Optional[Sequence[str]] = None,
        filters: Iterable[FilterCriterion] = (),
        sort: Optional[SortSpec] = None,
        page: Optional[PageRequest] = None,
        stable: bool = False
    ) -> BuiltQuery:
        """
        Build a paged SELECT.

        Args:
            table: Table name ("schema.table" allowed) or TableRef
            columns: Columns to select (None = every schema column)
            filters: Criteria combined with AND, in the given order
            sort: Resolved single-column sort, or None
            page: Page to fetch (None = no paging clause)
            stable: Append primary key columns to ORDER BY so consecutive
                pages never overlap or skip rows

        Raises:
            InvalidColumn: If any referenced column is not in the schema
            InvalidIdentifier: If table is not the table the schema describes
        """
        table_ref = self._table_ref(table)
        filters = list(filters)
        select_columns = list(columns) if columns else list(self.schema.column_names)

        self._check_columns(select_columns)
        self._check_columns(f.column for f in filters)
        if sort is not None:
            self._check_columns([sort.column])

        where_clause, params = self._where(filters)
        order_terms = self._order_terms(sort, stable)

        cols = ", ".join(self.dialect.quote_identifier(c) for c in select_columns)
        sql = f"SELECT {cols} FROM {self.dialect.quote_table(table_ref)}"
        if where_clause:
            sql += f" {where_clause}"
        if order_terms:
            sql += " ORDER BY " + ", ".join(order_terms)
        if page is not None:
            sql = self.dialect.paginate(sql, page.page_size, page.offset, bool(order_terms))

        return self._finish(sql, params)

    def build_count(self, table: TableArg, filters: Iterable[FilterCriterion] = ()) -> BuiltQuery:
        """Build SELECT COUNT(*) with the same WHERE clause as build()."""
        table_ref = self._table_ref(table)
        filters = list(filters)
        self._check_columns(f.column for f in filters)

        where_clause, params = self._where(filters)
        sql = f"SELECT COUNT(*) AS total FROM {self.dialect.quote_table(table_ref)}"
        if where_clause:
            sql += f" {where_clause}"
        return self._finish(sql, params)

    # ==================== Row-level Writes ====================

    def build_insert(self, table: TableArg, values: Mapping[str, Any]) -> BuiltQuery:
        """INSERT one row; values maps column name to database value."""
        table_ref = self._table_ref(table)
        if not values:
            raise ValueError("Insert requires at least one column value")
        self._check_writable(values.keys())

        names = list(values.keys())
        cols = ", ".join(self.dialect.quote_identifier(c) for c in names)
        placeholders = ", ".join(self.dialect.placeholder for _ in names)
        sql = f"INSERT INTO {self.dialect.quote_table(table_ref)} ({cols}) VALUES ({placeholders})"
        return self._finish(sql, [values[c] for c in names])

    def build_update(
        self,
        table: TableArg,
        values: Mapping[str, Any],
        key: Mapping[str, Any]
    ) -> BuiltQuery:
        """UPDATE the row identified by key (primary key column -> value)."""
        table_ref = self._table_ref(table)
        if not values:
            raise ValueError("Update requires at least one column value")
        self._check_writable(values.keys())
        key_clause, key_params = self._key_clause(key)

        assignments = ", ".join(
            f"{self.dialect.quote_identifier(c)} = {self.dialect.placeholder}" for c in values
        )
        sql = f"UPDATE {self.dialect.quote_table(table_ref)} SET {assignments} WHERE {key_clause}"
        return self._finish(sql, list(values.values()) + key_params)

    def build_delete(self, table: TableArg, key: Mapping[str, Any]) -> BuiltQuery:
        """DELETE the row identified by key (primary key column -> value)."""
        table_ref = self._table_ref(table)
        key_clause, key_params = self._key_clause(key)
        sql = f"DELETE FROM {self.dialect.quote_table(table_ref)} WHERE {key_clause}"
        return self._finish(sql, key_params)

    # ==================== Clauses ====================

    def _where(self, filters: List[FilterCriterion]) -> Tuple[str, List[Any]]:
        conditions: List[str] = []
        params: List[Any] = []
        for criterion in filters:
            fragment = self._filter_fragment(criterion)
            if fragment is None:
                continue
            condition, values = fragment
            conditions.append(condition)
            params.extend(values)

        if not conditions:
            return "", []
        return "WHERE " + " AND ".join(conditions), params

    def _filter_fragment(self, criterion: FilterCriterion) -> Optional[Tuple[str, Tuple[Any, ...]]]:
        """
        Translate one criterion to (condition, parameters).

        Returns None for a pattern operator with a blank value (criterion
        skipped). Every operator has a branch; adding a FilterOperator
        member without one fails static type checking at assert_never.
        """
        op = criterion.operator
        col = self.dialect.quote_identifier(criterion.column)
        ph = self.dialect.placeholder
        like = f"{col} LIKE {ph} ESCAPE '{LIKE_ESCAPE}'"

        if op.takes_value and criterion.value is None:
            raise QueryBuildError(f"Filter on '{criterion.column}' with {op.value} requires a value")

        if op is FilterOperator.CONTAINS:
            pattern = self._like_pattern(criterion.value, leading=True, trailing=True)
            return None if pattern is None else (like, (pattern,))
        elif op is FilterOperator.STARTS_WITH:
            pattern = self._like_pattern(criterion.value, trailing=True)
            return None if pattern is None else (like, (pattern,))
        elif op is FilterOperator.ENDS_WITH:
            pattern = self._like_pattern(criterion.value, leading=True)
            return None if pattern is None else (like, (pattern,))
        elif op is FilterOperator.EQUALS:
            return f"{col} = {ph}", (criterion.value,)
        elif op is FilterOperator.NOT_EQUALS:
            return f"{col} <> {ph}", (criterion.value,)
        elif op is FilterOperator.GT:
            return f"{col} > {ph}", (criterion.value,)
        elif op is FilterOperator.LT:
            return f"{col} < {ph}", (criterion.value,)
        elif op is FilterOperator.IS_EMPTY:
            if self._is_text(criterion.column):
                return f"({col} IS NULL OR {col} = '')", ()
            return f"{col} IS NULL", ()
        elif op is FilterOperator.IS_NOT_EMPTY:
            if self._is_text(criterion.column):
                return f"({col} IS NOT NULL AND {col} <> '')", ()
            return f"{col} IS NOT NULL", ()
        else:
            assert_never(op)

    def _like_pattern(self, value: Any, leading: bool = False, trailing: bool = False) -> Optional[str]:
        """
        Escape LIKE metacharacters typed literally, map user wildcards, then
        wrap with % on the requested ends.

        * -> % (any characters), ? -> _ (single character). An end the user
        already opened with * is not wrapped again: "John*" -> "John%".
        """
        text = str(value).strip()
        if not text:
            return None
        open_start = text.startswith("*")
        open_end = text.endswith("*")
        for char in (LIKE_ESCAPE,) + tuple(self.dialect.like_special_chars):
            text = text.replace(char, LIKE_ESCAPE + char)
        pattern = text.replace("*", "%").replace("?", "_")
        if leading and not open_start:
            pattern = "%" + pattern
        if trailing and not open_end:
            pattern += "%"
        return pattern

    def _order_terms(self, sort: Optional[SortSpec], stable: bool) -> List[str]:
        terms = []
        used = set()
        if sort is not None:
            direction = "DESC" if sort.direction is SortDirection.DESC else "ASC"
            terms.append(f"{self.dialect.quote_identifier(sort.column)} {direction}")
            used.add(sort.column)
        if stable:
            tiebreak = self.schema.primary_key() or self.schema.columns
            for col in tiebreak:
                if col.name not in used:
                    terms.append(f"{self.dialect.quote_identifier(col.name)} ASC")
        return terms

    def _key_clause(self, key: Mapping[str, Any]) -> Tuple[str, List[Any]]:
        if not key:
            raise ValueError("A primary key value map is required")
        self._check_columns(key.keys())
        for name, value in key.items():
            if value is None:
                raise ValueError(f"Primary key column '{name}' cannot be NULL")
        clause = " AND ".join(
            f"{self.dialect.quote_identifier(c)} = {self.dialect.placeholder}" for c in key
        )
        return clause, list(key.values())

    # ==================== Validation ====================

    def _table_ref(self, table: TableArg) -> TableRef:
        """
        Resolve the table argument and check it is the table the schema describes.

        Raises:
            InvalidIdentifier: If the table is not the schema's table
        """
        table_ref = table if isinstance(table, TableRef) else TableRef.parse(table)
        expected = self.schema.table_name.lower()
        candidates = {table_ref.qualified_name.lower()}
        if "." not in expected:
            candidates.add(table_ref.name.lower())
        if expected not in candidates:
            raise InvalidIdentifier(
                f"Table '{table_ref.qualified_name}' does not match the schema for '{self.schema.table_name}'"
            )
        return table_ref

    def _check_columns(self, names: Iterable[str]) -> List[ColumnDescriptor]:
        descriptors = []
        for name in names:
            descriptor = self.schema.column(name)
            if descriptor is None:
                raise InvalidColumn(name, self.schema.table_name)
            descriptors.append(descriptor)
        return descriptors

    def _check_writable(self, names: Iterable[str]):
        for descriptor in self._check_columns(names):
            if descriptor.read_only:
                raise InvalidColumn(descriptor.name, self.schema.table_name, "column is read-only")

    def _is_text(self, column: str) -> bool:
        descriptor = self.schema.column(column)
        return descriptor is not None and descriptor.display_type is DisplayType.TEXT

    def _finish(self, sql: str, params: Sequence[Any]) -> BuiltQuery:
        query = BuiltQuery(sql, tuple(params))
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Built query ({len(query.parameters)} params):\n{format_for_log(sql)}")
        return query


def build_query(
    schema: TableSchema,
    dialect: DatabaseDialect,
    table: TableArg,
    columns: Optional[Sequence[str]] = None,
    filters: Iterable[FilterCriterion] = (),
    sort: Optional[SortSpec] = None,
    page: Optional[PageRequest] = None
) -> BuiltQuery:
    """Convenience wrapper: QueryBuilder(schema, dialect).build(...)."""
    return QueryBuilder(schema, dialect).build(table, columns, filters, sort, page)
