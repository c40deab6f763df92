"""
Import Pipeline - write parsed file rows into a table with per-row error
collection.

Flow:
1. Resolve the mapping (source column -> target column) against the table
   schema; mapping problems raise MappingError before any row is touched
2. Optionally pre-validate every row; any failure stops the import with
   no write attempted
3. Write rows in batches, one parameterized INSERT per row. Rejected rows
   are recorded and skipped (OnError.SKIP) or stop the import (OnError.ABORT)

Cancellation is checked between batches. Batches already written stay
written; the result reports cancelled=True.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import logging

from ..constants import IMPORT_BATCH_SIZE, MAX_CHUNK_SIZE
from ..database.dialects.base import DatabaseDialect
from ..database.models import ColumnDescriptor, DisplayType, TableRef, TableSchema
from ..database.row_source import RowSource
from ..database.schema import SchemaProvider, as_table_ref
from ..errors import FieldValidationError, MappingError, WriteError
from ..query.builder import QueryBuilder
from .execution import (
    CancellationToken,
    ImportProgress,
    ImportProgressCallback,
    emit_progress,
    is_cancelled,
    percent_of,
)
from .file_parser import ParsedImportData
from .results import ImportResult, ImportRowError, ValidationError, ValidationWarning
from .type_formatter import TypeFormatter

logger = logging.getLogger(__name__)


class OnError(Enum):
    SKIP = "skip"    # Record the failed row and continue
    ABORT = "abort"  # Stop at the first failed row


@dataclass
class ImportOptions:
    """
    Attributes:
        validate_first: Type-check every row before writing anything
        on_error: What to do when a row is rejected during the write phase
        batch_size: Rows per batch (progress and cancellation granularity)
        on_progress: Called with an ImportProgress after each batch
        cancellation: Token checked between batches
    """
    validate_first: bool = False
    on_error: OnError = OnError.SKIP
    batch_size: int = IMPORT_BATCH_SIZE
    on_progress: Optional[ImportProgressCallback] = None
    cancellation: Optional[CancellationToken] = None

    def __post_init__(self):
        self.on_error = OnError(self.on_error)
        if not isinstance(self.batch_size, int) or not 0 < self.batch_size <= MAX_CHUNK_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_CHUNK_SIZE}, got {self.batch_size!r}")


class ColumnMapping:
    """
    Source column -> target column (None = skip the source column).

    Usage:
        mapping = ColumnMapping({"E-mail": "email", "Notes": None})
        mapping = ColumnMapping.identity(parsed, schema)
    """

    def __init__(self, pairs: Mapping[str, Optional[str]]):
        self._pairs: Dict[str, Optional[str]] = dict(pairs)

    @classmethod
    def identity(cls, parsed: ParsedImportData, schema: TableSchema) -> "ColumnMapping":
        """Map each source column to the same-named table column (case-insensitive)."""
        pairs = {}
        for source in parsed.source_columns:
            target = schema.find_column(source)
            pairs[source] = target.name if target is not None and not target.read_only else None
        return cls(pairs)

    def items(self):
        return self._pairs.items()

    def __getitem__(self, source: str) -> Optional[str]:
        return self._pairs[source]

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"ColumnMapping({self._pairs!r})"

    def resolve(self, parsed: ParsedImportData, schema: TableSchema) -> List[Tuple[int, ColumnDescriptor]]:
        """
        Check the mapping against the file and the table.

        Returns:
            (source column index, target descriptor) pairs in file order

        Raises:
            MappingError: Unknown source/target column, target mapped twice,
                read-only target, or required target column left unmapped
        """
        source_index = {name: i for i, name in enumerate(parsed.source_columns)}
        plan = []
        used: Dict[str, str] = {}

        for source, target in self._pairs.items():
            if source not in source_index:
                raise MappingError(f"Source column '{source}' is not in the file")
            if target is None:
                continue
            descriptor = schema.column(target)
            if descriptor is None:
                raise MappingError(f"Target column '{target}' does not exist in '{schema.table_name}'")
            if descriptor.read_only:
                raise MappingError(f"Target column '{target}' is read-only")
            if descriptor.name in used:
                raise MappingError(
                    f"Target column '{target}' is mapped from both "
                    f"'{used[descriptor.name]}' and '{source}'"
                )
            used[descriptor.name] = source
            plan.append((source_index[source], descriptor))

        if not plan:
            raise MappingError("No source column is mapped to a table column")

        missing = [c.name for c in schema.required_columns() if c.name not in used]
        if missing:
            raise MappingError(
                f"Required columns are not mapped: {', '.join(missing)}",
                missing_columns=missing
            )

        plan.sort(key=lambda p: p[0])
        return plan


@dataclass
class _ConvertedRow:
    values: Dict[str, Any]
    problems: List[Tuple[str, str]] = field(default_factory=list)   # (column, message)
    rounded: List[Tuple[str, str]] = field(default_factory=list)    # (column, message)


@dataclass
class _ImportContext:
    """Per-invocation state; never shared between imports."""
    table: TableRef
    builder: QueryBuilder
    plan: List[Tuple[int, ColumnDescriptor]]
    options: ImportOptions
    total_rows: int
    result: ImportResult = field(default_factory=ImportResult)
    batch_index: int = 0
    stopped: bool = False

    @property
    def rows_done(self) -> int:
        return self.result.rows_imported + self.result.rows_failed


class Importer:
    """
    Imports parsed rows into a table.

    Usage:
        importer = Importer(row_source, schema_provider, dialect)
        result = await importer.import_data(
            "customers", parsed, options=ImportOptions(on_error=OnError.SKIP)
        )
        result.rows_imported, result.rows_failed
    """

    def __init__(
        self,
        row_source: RowSource,
        schema_provider: SchemaProvider,
        dialect: DatabaseDialect,
        formatter: Optional[TypeFormatter] = None
    ):
        self.row_source = row_source
        self.schema_provider = schema_provider
        self.dialect = dialect
        self.formatter = formatter or TypeFormatter()

    async def import_data(
        self,
        table: Union[str, TableRef],
        parsed: ParsedImportData,
        mapping: Optional[ColumnMapping] = None,
        options: Optional[ImportOptions] = None
    ) -> ImportResult:
        """
        Import rows into a table.

        Args:
            table: Table name or TableRef
            parsed: Output of the file parser
            mapping: Column mapping (None = identity mapping by name)
            options: Validation, error policy, batching, progress, cancellation

        Returns:
            ImportResult with exact counts and per-row issues

        Raises:
            MappingError: The mapping cannot be applied to the table
        """
        options = options or ImportOptions()
        table_ref = as_table_ref(table)
        schema = await self.schema_provider.get_schema(table_ref)
        if mapping is None:
            mapping = ColumnMapping.identity(parsed, schema)
        plan = mapping.resolve(parsed, schema)

        ctx = _ImportContext(
            table=table_ref,
            builder=QueryBuilder(schema, self.dialect),
            plan=plan,
            options=options,
            total_rows=len(parsed.rows),
        )
        logger.info(
            f"Import started: {table_ref.qualified_name} rows={ctx.total_rows} "
            f"columns={[d.name for _, d in plan]} validate_first={options.validate_first} "
            f"on_error={options.on_error.value}"
        )

        if options.validate_first:
            self._validate_all(ctx, parsed.rows)
            if ctx.result.validation_errors:
                ctx.result.rows_failed = len({e.row_number for e in ctx.result.validation_errors})
                ctx.result.success = False
                logger.warning(
                    f"Import of {table_ref.qualified_name} rejected: "
                    f"{len(ctx.result.validation_errors)} validation errors, nothing written"
                )
                return ctx.result

        await self._write_batches(ctx, parsed.rows)

        result = ctx.result
        result.success = not result.errors and not result.validation_errors and not result.cancelled
        logger.info(f"Import finished: {table_ref.qualified_name} {result.summary()}")
        return result

    # ==================== Validation ====================

    def _validate_all(self, ctx: _ImportContext, rows: Sequence[Tuple[Any, ...]]):
        for row_number, row in enumerate(rows, start=1):
            converted = self._convert_row(ctx, row)
            snapshot = tuple(row)
            for column, message in converted.problems:
                ctx.result.validation_errors.append(
                    ValidationError(row_number, snapshot, message, column)
                )
            for column, message in converted.rounded:
                ctx.result.warnings.append(
                    ValidationWarning(row_number, snapshot, message, column)
                )

    def _convert_row(self, ctx: _ImportContext, row: Sequence[Any]) -> _ConvertedRow:
        """Parse every mapped value; collects all problems instead of stopping at the first."""
        converted = _ConvertedRow(values={})
        for index, column in ctx.plan:
            raw = row[index] if index < len(row) else None
            try:
                outcome = self.formatter.parse_outcome(raw, column)
            except FieldValidationError as e:
                converted.problems.append((column.name, str(e)))
                continue

            value = outcome.value
            if outcome.rounded:
                converted.rounded.append(
                    (column.name, f"'{raw}' rounded to {value} (scale {column.scale})")
                )

            if _is_blank(value, column):
                if column.has_default:
                    # Omitted so the column default applies
                    continue
                if not column.nullable:
                    converted.problems.append((column.name, f"Column '{column.name}' requires a value"))
                    continue
                value = None

            try:
                converted.values[column.name] = self.formatter.to_database(value, column)
            except FieldValidationError as e:
                converted.problems.append((column.name, str(e)))
        return converted

    # ==================== Writing ====================

    async def _write_batches(self, ctx: _ImportContext, rows: Sequence[Tuple[Any, ...]]):
        options = ctx.options
        for batch_start, batch in _batches(rows, options.batch_size):
            if is_cancelled(options.cancellation):
                ctx.result.cancelled = True
                logger.warning(
                    f"Import of {ctx.table.qualified_name} cancelled after "
                    f"{ctx.result.rows_imported} rows"
                )
                break

            for offset, row in enumerate(batch):
                await self._write_row(ctx, batch_start + offset + 1, row)
                if ctx.stopped:
                    break

            logger.debug(
                f"Import batch {ctx.batch_index} of {ctx.table.qualified_name}: "
                f"{ctx.rows_done}/{ctx.total_rows} rows processed"
            )
            await emit_progress(options.on_progress, ImportProgress(
                percent=percent_of(ctx.rows_done, ctx.total_rows),
                rows_imported=ctx.result.rows_imported,
                rows_failed=ctx.result.rows_failed,
                batch_index=ctx.batch_index,
            ))
            ctx.batch_index += 1
            if ctx.stopped:
                break

    async def _write_row(self, ctx: _ImportContext, row_number: int, row: Tuple[Any, ...]):
        converted = self._convert_row(ctx, row)
        if not ctx.options.validate_first:
            for column, message in converted.rounded:
                ctx.result.warnings.append(ValidationWarning(row_number, tuple(row), message, column))

        if converted.problems:
            column, message = converted.problems[0]
            self._record_failure(ctx, row_number, row, message, column, "DATA_TYPE")
            return

        if not converted.values:
            self._record_failure(ctx, row_number, row, "Row has no values to insert", None, None)
            return

        query = ctx.builder.build_insert(ctx.table, converted.values)
        try:
            await self.row_source.execute_write(query)
        except WriteError as e:
            if not e.recoverable:
                logger.error(
                    f"Import of {ctx.table.qualified_name}: row {row_number} hit a "
                    f"non-recoverable error ({e.code})"
                )
            self._record_failure(ctx, row_number, row, str(e), None, e.code)
            return

        ctx.result.rows_imported += 1

    def _record_failure(
        self,
        ctx: _ImportContext,
        row_number: int,
        row: Tuple[Any, ...],
        message: str,
        column: Optional[str],
        code: Optional[str]
    ):
        ctx.result.errors.append(ImportRowError(row_number, tuple(row), message, column, code))
        ctx.result.rows_failed += 1
        logger.warning(f"Import of {ctx.table.qualified_name}: row {row_number} rejected: {message}")

        if ctx.options.on_error is OnError.ABORT:
            ctx.stopped = True


def _is_blank(value: Any, column: ColumnDescriptor) -> bool:
    """NULL, or an empty string for a non-text column."""
    if value is None:
        return True
    return value == "" and column.display_type is not DisplayType.TEXT


def _batches(rows: Sequence[Any], size: int) -> Iterator[Tuple[int, Sequence[Any]]]:
    for start in range(0, len(rows), size):
        yield start, rows[start:start + size]


async def import_rows(
    row_source: RowSource,
    schema_provider: SchemaProvider,
    dialect: DatabaseDialect,
    table: Union[str, TableRef],
    parsed: ParsedImportData,
    mapping: Optional[ColumnMapping] = None,
    options: Optional[ImportOptions] = None,
    formatter: Optional[TypeFormatter] = None
) -> ImportResult:
    """Convenience wrapper: Importer(...).import_data(...)."""
    importer = Importer(row_source, schema_provider, dialect, formatter)
    return await importer.import_data(table, parsed, mapping, options)
