"""
Import result records - per-row issues and the aggregate ImportResult.

Row issues are immutable snapshots: row_number is the 1-based data row in
the source file (header excluded) and source_data is the raw row as parsed.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple


@dataclass(frozen=True)
class RowIssue:
    row_number: int
    source_data: Tuple[Any, ...]
    message: str
    column: Optional[str] = None

    def __str__(self) -> str:
        where = f"Row {self.row_number}"
        if self.column:
            where += f" [{self.column}]"
        return f"{where}: {self.message}"


@dataclass(frozen=True)
class ImportRowError(RowIssue):
    """A row rejected while writing (conversion failure or server error)."""
    code: Optional[str] = None


@dataclass(frozen=True)
class ValidationError(RowIssue):
    """A value that failed pre-validation."""


@dataclass(frozen=True)
class ValidationWarning(RowIssue):
    """A value accepted with a change (decimal rounded to the column scale)."""


@dataclass
class ImportResult:
    """
    Outcome of an import.

    success is True only when every row was written: no row errors, no
    validation errors and no cancellation.
    """
    success: bool = False
    rows_imported: int = 0
    rows_failed: int = 0
    errors: List[ImportRowError] = field(default_factory=list)
    validation_errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    cancelled: bool = False

    def summary(self) -> str:
        parts = [f"{self.rows_imported} imported", f"{self.rows_failed} failed"]
        if self.validation_errors:
            parts.append(f"{len(self.validation_errors)} validation errors")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warnings")
        if self.cancelled:
            parts.append("cancelled")
        return ", ".join(parts)
