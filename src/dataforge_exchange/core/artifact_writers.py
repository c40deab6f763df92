"""
Artifact Writers - assemble exported rows into CSV or xlsx bytes.

Writers receive database rows chunk by chunk and produce the final file
content only in finish(), so an aborted export never yields a partial
artifact.
"""

import csv
import io
import re
from abc import ABC, abstractmethod
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

import logging

from ..constants import CSV_BOM, SPREADSHEET_SHEET_NAME_MAX
from ..database.models import ColumnDescriptor, DisplayType
from ..errors import FieldValidationError
from .type_formatter import TypeFormatter

logger = logging.getLogger(__name__)

# Characters Excel does not allow in sheet titles
_SHEET_TITLE_INVALID = re.compile(r"[\\/?*\[\]:]")


class ArtifactWriter(ABC):
    """Base class: one writer per export invocation."""

    def __init__(self, columns: Sequence[ColumnDescriptor], formatter: TypeFormatter):
        self.columns = list(columns)
        self.formatter = formatter
        self.row_count = 0

    @abstractmethod
    def write_header(self):
        pass

    @abstractmethod
    def write_rows(self, rows: Iterable[Sequence[Any]]):
        pass

    @abstractmethod
    def finish(self) -> bytes:
        """Return the complete artifact content."""
        pass


class CsvArtifactWriter(ArtifactWriter):
    """
    Comma-delimited UTF-8 CSV with BOM.

    Fields containing a comma, quote, CR or LF are quoted with inner quotes
    doubled; NULL is written as an empty field.
    """

    def __init__(self, columns: Sequence[ColumnDescriptor], formatter: TypeFormatter):
        super().__init__(columns, formatter)
        self._buffer = io.StringIO()
        self._writer = csv.writer(
            self._buffer,
            delimiter=",",
            quotechar='"',
            doublequote=True,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\r\n",
        )

    def write_header(self):
        self._writer.writerow([c.name for c in self.columns])

    def write_rows(self, rows: Iterable[Sequence[Any]]):
        for row in rows:
            self._writer.writerow(
                [self.formatter.to_display(value, column) for value, column in zip(row, self.columns)]
            )
            self.row_count += 1

    def finish(self) -> bytes:
        return (CSV_BOM + self._buffer.getvalue()).encode("utf-8")


class SpreadsheetArtifactWriter(ArtifactWriter):
    """
    xlsx workbook with one sheet named after the table and typed cells.

    Uses an openpyxl write-only workbook so rows are streamed into the sheet.
    """

    def __init__(self, columns: Sequence[ColumnDescriptor], formatter: TypeFormatter, sheet_name: str):
        super().__init__(columns, formatter)
        self._workbook = Workbook(write_only=True)
        self._sheet = self._workbook.create_sheet(title=sheet_title(sheet_name))

    def write_header(self):
        self._sheet.append([c.name for c in self.columns])

    def write_rows(self, rows: Iterable[Sequence[Any]]):
        for row in rows:
            self._sheet.append([self._cell_value(value, column) for value, column in zip(row, self.columns)])
            self.row_count += 1

    def finish(self) -> bytes:
        buffer = io.BytesIO()
        self._workbook.save(buffer)
        return buffer.getvalue()

    def _cell_value(self, value: Any, column: ColumnDescriptor) -> Any:
        """Convert a database value into an openpyxl cell value (None = empty cell)."""
        if value is None:
            return None

        display_type = column.display_type
        if display_type in (DisplayType.BOOLEAN, DisplayType.DATE, DisplayType.TIME, DisplayType.TIMESTAMP) \
                and not isinstance(value, (bool, date, time)):
            try:
                value = self.formatter.parse(value, column)
            except FieldValidationError:
                return _clean_text(str(value))

        if isinstance(value, datetime):
            # Excel has no time zone support
            return value.replace(tzinfo=None)
        if isinstance(value, time):
            return value.replace(tzinfo=None)
        if isinstance(value, (bool, int, float, date)):
            return value
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, bytes):
            return value.hex()
        return _clean_text(str(value))


def sheet_title(table_name: str) -> str:
    """Excel-safe sheet title derived from a table name (max 31 chars)."""
    title = _SHEET_TITLE_INVALID.sub("_", table_name).strip("'") or "Sheet1"
    return title[:SPREADSHEET_SHEET_NAME_MAX]


def _clean_text(text: str) -> str:
    # Control characters are rejected by openpyxl
    return ILLEGAL_CHARACTERS_RE.sub("", text)
