"""
Export Pipeline - stream a table (or a filtered view / one page of it) into
a CSV or xlsx artifact.

Flow:
1. Resolve the table schema and validate columns/filters/sort (no I/O yet
   beyond the schema lookup)
2. COUNT(*) once to know the total
3. Fetch chunks of chunk_size rows in a stable order, format them and feed
   the artifact writer, reporting progress after each chunk
4. Assemble the artifact once every chunk has been read

Cancellation is checked before every chunk fetch and raises
OperationCancelled; any fetch error aborts with ExportError. In both cases
no artifact is produced.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

import logging

from ..constants import (
    CSV_MEDIA_TYPE,
    EXPORT_CHUNK_SIZE,
    MAX_CHUNK_SIZE,
    SPREADSHEET_MEDIA_TYPE,
)
from ..database.dialects.base import DatabaseDialect
from ..database.models import ColumnDescriptor, TableRef, TableSchema
from ..database.row_source import RowSource
from ..database.schema import SchemaProvider, as_table_ref
from ..errors import ExportError, InvalidColumn, OperationCancelled
from ..query.builder import QueryBuilder
from ..query.models import BuiltQuery, FilterCriterion, PageRequest, SortSpec
from ..query.navigation import PageWindow
from .artifact_writers import ArtifactWriter, CsvArtifactWriter, SpreadsheetArtifactWriter
from .execution import (
    CancellationToken,
    ExportProgress,
    ExportProgressCallback,
    emit_progress,
    percent_of,
)
from .type_formatter import TypeFormatter

logger = logging.getLogger(__name__)


class ExportScope(Enum):
    PAGE = "page"            # Only the requested page (filters and sort applied)
    ALL = "all"              # Whole table, filters ignored
    FILTERED = "filtered"    # Every row matching the filters


class ExportFormat(Enum):
    CSV = "csv"
    SPREADSHEET = "xlsx"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def media_type(self) -> str:
        return CSV_MEDIA_TYPE if self is ExportFormat.CSV else SPREADSHEET_MEDIA_TYPE


@dataclass(frozen=True)
class ExportJob:
    """
    What to export and how.

    Attributes:
        scope: PAGE, ALL or FILTERED
        format: CSV or SPREADSHEET
        chunk_size: Rows per fetch round-trip
        filters: Criteria used by PAGE and FILTERED scopes
        sort: Optional sort, applied in every scope
        page: Page to export (required for PAGE scope)
    """
    scope: ExportScope = ExportScope.ALL
    format: ExportFormat = ExportFormat.CSV
    chunk_size: int = EXPORT_CHUNK_SIZE
    filters: Tuple[FilterCriterion, ...] = ()
    sort: Optional[SortSpec] = None
    page: Optional[PageRequest] = None

    def __post_init__(self):
        object.__setattr__(self, "scope", ExportScope(self.scope))
        object.__setattr__(self, "format", ExportFormat(self.format))
        object.__setattr__(self, "filters", tuple(self.filters))
        if not isinstance(self.chunk_size, int) or not 0 < self.chunk_size <= MAX_CHUNK_SIZE:
            raise ValueError(f"chunk_size must be between 1 and {MAX_CHUNK_SIZE}, got {self.chunk_size!r}")
        if self.scope is ExportScope.PAGE and self.page is None:
            raise ValueError("PAGE scope requires a page")

    @property
    def effective_filters(self) -> Tuple[FilterCriterion, ...]:
        return () if self.scope is ExportScope.ALL else self.filters


@dataclass(frozen=True)
class ExportArtifact:
    """Finished export file."""
    content: bytes = field(repr=False)
    format: ExportFormat
    file_name: str
    media_type: str
    row_count: int


@dataclass
class _ExportContext:
    """Per-invocation state; never shared between exports."""
    table: TableRef
    job: ExportJob
    builder: QueryBuilder
    columns: Sequence[ColumnDescriptor]
    writer: ArtifactWriter
    total_rows: int = 0
    rows_processed: int = 0
    chunk_index: int = 0
    last_percent: int = -1


class Exporter:
    """
    Streams table rows into an export artifact.

    Usage:
        exporter = Exporter(row_source, schema_provider, dialect)
        artifact = await exporter.export(
            "customers",
            job=ExportJob(scope=ExportScope.FILTERED, filters=(criterion,)),
            on_progress=lambda p: print(p.percent),
        )
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

    async def export(
        self,
        table: Union[str, TableRef],
        columns: Optional[Sequence[str]] = None,
        job: Optional[ExportJob] = None,
        on_progress: Optional[ExportProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None
    ) -> ExportArtifact:
        """
        Export rows of a table.

        Args:
            table: Table name or TableRef
            columns: Columns to export in order (None = all columns)
            job: Scope, format and chunking (defaults to ALL as CSV)
            on_progress: Called with an ExportProgress after each chunk
            cancellation: Token checked before each chunk fetch

        Returns:
            ExportArtifact with the complete file content

        Raises:
            InvalidColumn: Unknown column in columns/filters/sort
            PageOutOfRange: PAGE scope page is past the last page
            OperationCancelled: Cancellation was requested
            ExportError: A count or chunk query failed
        """
        job = job or ExportJob()
        table_ref = as_table_ref(table)
        schema = await self.schema_provider.get_schema(table_ref)
        ctx = self._prepare(table_ref, schema, columns, job)

        ctx.total_rows = await self._count(ctx)
        logger.info(
            f"Export started: {table_ref.qualified_name} scope={job.scope.value} "
            f"format={job.format.value} total={ctx.total_rows}"
        )

        ctx.writer.write_header()
        if job.scope is ExportScope.PAGE:
            await self._fetch_chunk(ctx, job.page, cancellation, on_progress)
        else:
            while ctx.rows_processed < ctx.total_rows:
                page = PageRequest(page=ctx.chunk_index + 1, page_size=job.chunk_size)
                fetched = await self._fetch_chunk(ctx, page, cancellation, on_progress)
                if fetched < job.chunk_size and ctx.rows_processed < ctx.total_rows:
                    logger.warning(
                        f"Export of {table_ref.qualified_name}: table shrank during export, "
                        f"{ctx.rows_processed} of {ctx.total_rows} rows read"
                    )
                    break

        if ctx.last_percent != 100:
            await self._report(ctx, on_progress, final=True)

        content = ctx.writer.finish()
        artifact = ExportArtifact(
            content=content,
            format=job.format,
            file_name=f"{table_ref.name}.{job.format.extension}",
            media_type=job.format.media_type,
            row_count=ctx.writer.row_count,
        )
        logger.info(
            f"Export finished: {table_ref.qualified_name} rows={artifact.row_count} "
            f"bytes={len(content)}"
        )
        return artifact

    # ==================== Steps ====================

    def _prepare(
        self,
        table_ref: TableRef,
        schema: TableSchema,
        columns: Optional[Sequence[str]],
        job: ExportJob
    ) -> _ExportContext:
        """Validate every identifier and build the writer before any row I/O."""
        names = list(columns) if columns else list(schema.column_names)
        descriptors = []
        for name in names:
            descriptor = schema.column(name)
            if descriptor is None:
                raise InvalidColumn(name, schema.table_name)
            descriptors.append(descriptor)

        builder = QueryBuilder(schema, self.dialect)
        # Dry build surfaces InvalidColumn for filters and sort
        builder.build(table_ref, names, job.effective_filters, job.sort, PageRequest(1, job.chunk_size))

        if job.format is ExportFormat.CSV:
            writer = CsvArtifactWriter(descriptors, self.formatter)
        else:
            writer = SpreadsheetArtifactWriter(descriptors, self.formatter, table_ref.name)

        return _ExportContext(
            table=table_ref,
            job=job,
            builder=builder,
            columns=descriptors,
            writer=writer,
        )

    async def _count(self, ctx: _ExportContext) -> int:
        query = ctx.builder.build_count(ctx.table, ctx.job.effective_filters)
        result = await self._run(query, ctx, "count")
        count = int(result.rows[0][0]) if result.rows else 0

        if ctx.job.scope is ExportScope.PAGE:
            page = ctx.job.page
            # Pages past the last one are rejected, not clamped
            PageWindow(count, page.page_size).request(page.page)
            return max(0, min(page.page_size, count - page.offset))
        return count

    async def _fetch_chunk(
        self,
        ctx: _ExportContext,
        page: PageRequest,
        cancellation: Optional[CancellationToken],
        on_progress: Optional[ExportProgressCallback]
    ) -> int:
        """Fetch, format and report one chunk; returns the number of rows read."""
        if cancellation is not None:
            self._check_cancelled(ctx, cancellation)

        query = ctx.builder.build(
            ctx.table,
            [c.name for c in ctx.columns],
            ctx.job.effective_filters,
            ctx.job.sort,
            page,
            stable=True,
        )
        result = await self._run(query, ctx, f"chunk {ctx.chunk_index}")

        # A chunk that arrives after cancellation was requested is discarded
        if cancellation is not None:
            self._check_cancelled(ctx, cancellation)

        ctx.writer.write_rows(result.rows)
        ctx.rows_processed += len(result.rows)
        logger.debug(
            f"Export chunk {ctx.chunk_index} of {ctx.table.qualified_name}: "
            f"{len(result.rows)} rows ({ctx.rows_processed}/{ctx.total_rows})"
        )
        await self._report(ctx, on_progress)
        ctx.chunk_index += 1
        return len(result.rows)

    async def _run(self, query: BuiltQuery, ctx: _ExportContext, step: str):
        try:
            return await self.row_source.execute(query)
        except OperationCancelled:
            raise
        except Exception as e:
            logger.error(f"Export of {ctx.table.qualified_name} aborted at {step}: {e}")
            raise ExportError(
                f"Export of '{ctx.table.qualified_name}' failed at {step}: {e}"
            ) from e

    def _check_cancelled(self, ctx: _ExportContext, cancellation: CancellationToken):
        if cancellation.cancelled:
            logger.warning(
                f"Export of {ctx.table.qualified_name} cancelled after "
                f"{ctx.rows_processed} rows"
            )
            cancellation.raise_if_cancelled()

    async def _report(
        self,
        ctx: _ExportContext,
        on_progress: Optional[ExportProgressCallback],
        final: bool = False
    ):
        percent = 100 if final else percent_of(ctx.rows_processed, ctx.total_rows)
        ctx.last_percent = percent
        await emit_progress(on_progress, ExportProgress(
            percent=percent,
            rows_processed=ctx.rows_processed,
            total_rows=ctx.total_rows,
            chunk_index=ctx.chunk_index if not final else max(0, ctx.chunk_index - 1),
        ))


async def export_table(
    row_source: RowSource,
    schema_provider: SchemaProvider,
    dialect: DatabaseDialect,
    table: Union[str, TableRef],
    columns: Optional[Sequence[str]] = None,
    job: Optional[ExportJob] = None,
    formatter: Optional[TypeFormatter] = None,
    on_progress: Optional[ExportProgressCallback] = None,
    cancellation: Optional[CancellationToken] = None
) -> ExportArtifact:
    """Convenience wrapper: Exporter(...).export(...)."""
    exporter = Exporter(row_source, schema_provider, dialect, formatter)
    return await exporter.export(table, columns, job, on_progress, cancellation)
