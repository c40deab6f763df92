"""
DataForge Exchange - bulk data exchange engine

Parameterized query building, chunked CSV/xlsx export and validated,
batched import for relational tables.
"""

import logging
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("data-forge-exchange")
except PackageNotFoundError:
    # Package not installed
    __version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .errors import (
    ExchangeError,
    ExportError,
    FieldValidationError,
    InvalidColumn,
    InvalidIdentifier,
    InvalidOperator,
    MappingError,
    OperationCancelled,
    PageOutOfRange,
    ParseError,
    QueryBuildError,
    UnsupportedDialect,
    WriteError,
)
from .database import (
    ColumnDescriptor,
    DbApiRowSource,
    DialectFactory,
    DialectSchemaProvider,
    DisplayType,
    StaticSchemaProvider,
    TableRef,
    TableSchema,
)
from .query import (
    FilterCriterion,
    FilterOperator,
    PageRequest,
    PageWindow,
    QueryBuilder,
    SortDirection,
    SortSpec,
    build_query,
    next_sort,
)
from .core import (
    CancellationToken,
    ColumnMapping,
    DateOrder,
    ExportFormat,
    ExportJob,
    ExportScope,
    FileParser,
    ImportOptions,
    OnError,
    ParseHints,
    TypeFormatter,
    export_table,
    import_rows,
    parse_file,
)
from .config import ExchangeSettings

__all__ = [
    "__version__",
    "ExchangeError",
    "ExportError",
    "FieldValidationError",
    "InvalidColumn",
    "InvalidIdentifier",
    "InvalidOperator",
    "MappingError",
    "OperationCancelled",
    "PageOutOfRange",
    "ParseError",
    "QueryBuildError",
    "UnsupportedDialect",
    "WriteError",
    "ColumnDescriptor",
    "DbApiRowSource",
    "DialectFactory",
    "DialectSchemaProvider",
    "DisplayType",
    "StaticSchemaProvider",
    "TableRef",
    "TableSchema",
    "FilterCriterion",
    "FilterOperator",
    "PageRequest",
    "PageWindow",
    "QueryBuilder",
    "SortDirection",
    "SortSpec",
    "build_query",
    "next_sort",
    "CancellationToken",
    "ColumnMapping",
    "DateOrder",
    "ExportFormat",
    "ExportJob",
    "ExportScope",
    "FileParser",
    "ImportOptions",
    "OnError",
    "ParseHints",
    "TypeFormatter",
    "export_table",
    "import_rows",
    "parse_file",
    "ExchangeSettings",
]
