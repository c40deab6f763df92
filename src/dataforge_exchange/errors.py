"""
Exceptions raised by the exchange engine.

Construction-time errors (bad columns, bad mapping) are raised before any
I/O. Per-row problems during an import are collected as result records
(see core.results), not raised.
"""

from typing import Optional, Sequence


class ExchangeError(Exception):
    """Base error for all exchange engine exceptions."""


class QueryBuildError(ExchangeError):
    """Raised when a query cannot be built from the given descriptors."""


class InvalidColumn(QueryBuildError):
    """Raised when a referenced column is absent from the table schema."""

    def __init__(self, column: str, table: str, reason: str = "unknown column"):
        self.column = column
        self.table = table
        super().__init__(f"Invalid column '{column}' for table '{table}': {reason}")


class InvalidOperator(QueryBuildError):
    """Raised when a filter operator is not one of the supported operators."""

    def __init__(self, operator: object):
        self.operator = operator
        super().__init__(f"Unsupported filter operator: {operator!r}")


class InvalidIdentifier(QueryBuildError):
    """Raised when a table or schema name contains invalid characters."""


class UnsupportedDialect(ExchangeError):
    """Raised when no dialect is registered for a database type."""


class PageOutOfRange(ExchangeError, ValueError):
    """Raised when a requested page is outside [1, total_pages]."""

    def __init__(self, page: int, total_pages: int):
        self.page = page
        self.total_pages = total_pages
        super().__init__(f"Page {page} is out of range (1..{total_pages})")


class ParseError(ExchangeError):
    """Raised when an uploaded file cannot be parsed."""

    def __init__(self, message: str, row_number: Optional[int] = None):
        self.row_number = row_number
        if row_number is not None:
            message = f"Row {row_number}: {message}"
        super().__init__(message)


class MappingError(ExchangeError):
    """Raised when a column mapping cannot be applied to the target table."""

    def __init__(self, message: str, missing_columns: Sequence[str] = ()):
        self.missing_columns = tuple(missing_columns)
        super().__init__(message)


class FieldValidationError(ExchangeError, ValueError):
    """Raised when a single value cannot be converted for its column."""

    def __init__(self, message: str, column: Optional[str] = None):
        self.column = column
        super().__init__(message)


class WriteError(ExchangeError):
    """Raised by a row source when a single write is rejected by the server."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", recoverable: bool = True):
        self.code = code
        self.recoverable = recoverable
        super().__init__(message)


class ExportError(ExchangeError):
    """Raised when an export is aborted because a chunk could not be fetched."""


class OperationCancelled(ExchangeError):
    """Raised when a cooperative cancellation request stops an export."""
