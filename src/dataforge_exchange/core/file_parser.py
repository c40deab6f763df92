"""
File Parser - uploaded CSV/xlsx bytes to columns + rows.

Features:
- Encoding detection for text files (BOM, UTF-8, then Windows/Latin encodings)
- Delimiter detection among comma, semicolon and tab
- Header detection when the caller does not say whether row 1 is a header
- Spreadsheets via pandas + openpyxl, typed cell values preserved

CSV values are kept as strings (pandas dtype=str, no NA conversion) so the
import pipeline decides what an empty field means for each column.
"""

import io
import math
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

import logging

from ..constants import (
    CSV_BOM,
    CSV_EXTENSIONS,
    DELIMITER_CANDIDATES,
    DELIMITER_SAMPLE_LINES,
    ENCODING_SAMPLE_BYTES,
    FALLBACK_ENCODINGS,
    SPREADSHEET_EXTENSIONS,
)
from ..database.models import ColumnDescriptor, DisplayType
from ..errors import FieldValidationError, ParseError
from .type_formatter import TypeFormatter

logger = logging.getLogger(__name__)

_XLSX_SIGNATURE = b"PK\x03\x04"
_PANDAS_LINE_RE = re.compile(r"Expected (\d+) fields in line (\d+), saw (\d+)")

# Generic sample columns used by the header heuristic when no target columns line up
_SAMPLE_COLUMNS = (
    ColumnDescriptor("sample", "DECIMAL", DisplayType.DECIMAL),
    ColumnDescriptor("sample", "DATE", DisplayType.DATE),
    ColumnDescriptor("sample", "TIMESTAMP", DisplayType.TIMESTAMP),
    ColumnDescriptor("sample", "TIME", DisplayType.TIME),
)


class FileFormat(Enum):
    CSV = "csv"
    SPREADSHEET = "spreadsheet"


@dataclass(frozen=True)
class ParseHints:
    """
    Caller-supplied parsing hints; None means "detect".

    Attributes:
        format: CSV or SPREADSHEET (None = sniff content / file extension)
        file_name: Original file name, used for format sniffing and logs
        delimiter: CSV delimiter
        encoding: Text encoding of CSV content
        has_header: Whether row 1 holds column names (None = heuristic)
        sheet: Worksheet name or 0-based index
        target_columns: Target table columns, sharpen the header heuristic
    """
    format: Optional[FileFormat] = None
    file_name: Optional[str] = None
    delimiter: Optional[str] = None
    encoding: Optional[str] = None
    has_header: Optional[bool] = None
    sheet: Optional[Union[str, int]] = None
    target_columns: Tuple[ColumnDescriptor, ...] = ()

    def __post_init__(self):
        if self.format is not None:
            object.__setattr__(self, "format", FileFormat(self.format))
        object.__setattr__(self, "target_columns", tuple(self.target_columns))


@dataclass(frozen=True)
class ParsedImportData:
    """
    Parsed file content.

    Attributes:
        source_columns: Column names (header row or Column1..N)
        rows: Data rows, each padded to len(source_columns)
        source_info: How the file was read (encoding, delimiter, sheet, header)
    """
    source_columns: Tuple[str, ...]
    rows: Tuple[Tuple[Any, ...], ...]
    source_info: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def _detect_encoding(raw: bytes, sample_size: int = ENCODING_SAMPLE_BYTES) -> str:
    """
    Detect text encoding by trying common encodings.

    Args:
        raw: File content
        sample_size: Number of bytes to sample

    Returns:
        Detected encoding name
    """
    # Check for BOM markers first
    if raw.startswith(b'\xef\xbb\xbf'):
        return 'utf-8-sig'
    if raw.startswith(b'\xff\xfe') or raw.startswith(b'\xfe\xff'):
        return 'utf-16'

    sample = raw[:sample_size]

    # Try UTF-8 first (most common); a multi-byte sequence may be cut at
    # the sample boundary, so the whole content decides on failure
    try:
        sample.decode('utf-8')
        return 'utf-8'
    except UnicodeDecodeError as e:
        if len(raw) > sample_size and e.start >= len(sample) - 3:
            try:
                raw.decode('utf-8')
                return 'utf-8'
            except UnicodeDecodeError:
                pass

    # Try Windows encodings (common for European data)
    for encoding in FALLBACK_ENCODINGS:
        try:
            sample.decode(encoding)
            return encoding
        except (UnicodeDecodeError, LookupError):
            continue

    # latin-1 accepts any byte sequence
    return 'latin-1'


def _count_outside_quotes(line: str, delimiter: str) -> int:
    count = 0
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            count += 1
    return count


def _detect_delimiter(text: str) -> str:
    """
    Detect the CSV delimiter from the first lines.

    A delimiter whose count is the same non-zero value on every sampled line
    wins over one with an irregular count; the highest count breaks ties.
    Defaults to comma.
    """
    lines = [line for line in text.splitlines() if line.strip()][:DELIMITER_SAMPLE_LINES]
    if not lines:
        return ','

    consistent = {}
    totals = {}
    for delimiter in DELIMITER_CANDIDATES:
        counts = [_count_outside_quotes(line, delimiter) for line in lines]
        totals[delimiter] = sum(counts)
        if counts[0] > 0 and all(c == counts[0] for c in counts):
            consistent[delimiter] = counts[0]

    if consistent:
        return max(consistent, key=consistent.get)

    best = max(totals, key=totals.get)
    if totals[best] > 0:
        return best
    return ','


class FileParser:
    """
    Parses uploaded file content into ParsedImportData.

    Usage:
        parser = FileParser()
        parsed = parser.parse(upload_bytes, ParseHints(file_name="customers.csv"))
        parsed.source_columns  # ('id', 'name', 'email')
    """

    def __init__(self, formatter: Optional[TypeFormatter] = None):
        self.formatter = formatter or TypeFormatter()

    def parse(self, raw_content: Union[bytes, str], hints: Optional[ParseHints] = None) -> ParsedImportData:
        """
        Parse CSV or spreadsheet content.

        Args:
            raw_content: File bytes (or already-decoded CSV text)
            hints: Parsing hints

        Returns:
            ParsedImportData

        Raises:
            ParseError: Empty input, malformed rows, duplicate headers,
                ambiguous worksheet
        """
        hints = hints or ParseHints()
        if raw_content is None or len(raw_content) == 0:
            raise ParseError("File is empty")

        file_format = self._resolve_format(raw_content, hints)
        if file_format is FileFormat.SPREADSHEET:
            if isinstance(raw_content, str):
                raise ParseError("Spreadsheet content must be bytes")
            parsed = self._parse_spreadsheet(raw_content, hints)
        else:
            parsed = self._parse_csv(raw_content, hints)

        logger.info(
            f"Parsed {hints.file_name or file_format.value}: "
            f"{len(parsed.rows)} rows, {len(parsed.source_columns)} columns"
        )
        return parsed

    # ==================== Format ====================

    def _resolve_format(self, raw_content: Union[bytes, str], hints: ParseHints) -> FileFormat:
        if hints.format is not None:
            return hints.format
        if isinstance(raw_content, bytes) and raw_content.startswith(_XLSX_SIGNATURE):
            return FileFormat.SPREADSHEET
        if hints.file_name:
            suffix = Path(hints.file_name).suffix.lower()
            if suffix in SPREADSHEET_EXTENSIONS:
                return FileFormat.SPREADSHEET
            if suffix in CSV_EXTENSIONS:
                return FileFormat.CSV
        return FileFormat.CSV

    # ==================== CSV ====================

    def _parse_csv(self, raw_content: Union[bytes, str], hints: ParseHints) -> ParsedImportData:
        source_info: Dict[str, Any] = {"format": FileFormat.CSV.value}

        if isinstance(raw_content, bytes):
            encoding = hints.encoding or _detect_encoding(raw_content)
            try:
                text = raw_content.decode(encoding)
            except (UnicodeDecodeError, LookupError) as e:
                raise ParseError(f"Cannot decode file as {encoding}: {e}") from e
            source_info["encoding"] = encoding
        else:
            text = raw_content
            source_info["encoding"] = "str"

        text = text.lstrip(CSV_BOM)
        if not text.strip():
            raise ParseError("File is empty")

        delimiter = hints.delimiter or _detect_delimiter(text)
        source_info["delimiter"] = delimiter

        try:
            df = pd.read_csv(
                io.StringIO(text),
                sep=delimiter,
                header=None,
                dtype=str,
                keep_default_na=False,
                na_filter=False,
                skip_blank_lines=True,
                quotechar='"',
                doublequote=True,
            )
        except pd.errors.EmptyDataError:
            raise ParseError("File is empty") from None
        except pd.errors.ParserError as e:
            raise self._ragged_row_error(e) from e

        records = [
            tuple("" if _is_missing(v) else v for v in row)
            for row in df.itertuples(index=False, name=None)
        ]
        return self._build(records, hints, source_info)

    def _ragged_row_error(self, error: Exception) -> ParseError:
        match = _PANDAS_LINE_RE.search(str(error))
        if match is None:
            return ParseError(f"Malformed CSV: {error}")
        expected, line, saw = (int(g) for g in match.groups())
        return ParseError(
            f"expected {expected} fields, found {saw} (line {line} of the file)",
            row_number=line
        )

    # ==================== Spreadsheet ====================

    def _parse_spreadsheet(self, raw_content: bytes, hints: ParseHints) -> ParsedImportData:
        try:
            excel_file = pd.ExcelFile(io.BytesIO(raw_content), engine="openpyxl")
        except Exception as e:
            raise ParseError(f"Cannot open spreadsheet: {e}") from e

        sheet_names = list(excel_file.sheet_names)
        sheet = hints.sheet
        if sheet is None:
            if len(sheet_names) != 1:
                raise ParseError(
                    f"Workbook has {len(sheet_names)} sheets, choose one: {', '.join(sheet_names)}"
                )
            sheet = sheet_names[0]
        elif isinstance(sheet, int):
            if not 0 <= sheet < len(sheet_names):
                raise ParseError(f"Sheet index {sheet} out of range (0..{len(sheet_names) - 1})")
            sheet = sheet_names[sheet]
        elif sheet not in sheet_names:
            raise ParseError(f"Sheet '{sheet}' not found, available: {', '.join(sheet_names)}")

        df = pd.read_excel(excel_file, sheet_name=sheet, header=None, dtype=object)
        records = [tuple(_cell_value(v) for v in row) for row in df.itertuples(index=False, name=None)]
        records = _trim_empty(records)
        if not records:
            raise ParseError(f"Sheet '{sheet}' is empty")

        source_info = {
            "format": FileFormat.SPREADSHEET.value,
            "sheet": sheet,
            "available_sheets": sheet_names,
        }
        return self._build(records, hints, source_info)

    # ==================== Header / Rows ====================

    def _build(
        self,
        records: List[Tuple[Any, ...]],
        hints: ParseHints,
        source_info: Dict[str, Any]
    ) -> ParsedImportData:
        if not records:
            raise ParseError("File is empty")

        has_header = hints.has_header
        if has_header is None:
            has_header = self._looks_like_header(records[0], hints.target_columns)
            source_info["header_detected"] = True
        source_info["has_header"] = has_header

        width = max(len(r) for r in records) if records else 0
        if has_header:
            columns = self._header_names(records[0], width)
            data = records[1:]
        else:
            columns = tuple(f"Column{i}" for i in range(1, width + 1))
            data = records

        rows = []
        # Columns span the widest row; CSV rows longer than the first line
        # are already rejected by the reader
        for row in data:
            if len(row) < len(columns):
                row = tuple(row) + ("",) * (len(columns) - len(row))
            rows.append(tuple(row))

        return ParsedImportData(
            source_columns=columns,
            rows=tuple(rows),
            source_info=source_info,
        )

    def _header_names(self, first_row: Sequence[Any], width: int) -> Tuple[str, ...]:
        names = []
        for i in range(width):
            value = first_row[i] if i < len(first_row) else None
            name = "" if value is None else str(value).strip()
            names.append(name or f"Column{i + 1}")

        seen = {}
        for name in names:
            key = name.lower()
            if key in seen:
                raise ParseError(f"Duplicate column name in header: '{name}'")
            seen[key] = name
        return tuple(names)

    def _looks_like_header(self, first_row: Sequence[Any], target_columns: Sequence[ColumnDescriptor]) -> bool:
        """
        Heuristic: row 1 is a header when every value is non-empty text that
        does not parse as a number or date.

        When target columns line up with the row, each value must also fail
        parsing for its own target column (text columns excepted), and any
        value equal to a target column name counts as a header.
        """
        values = list(first_row)
        if not values:
            return False
        for value in values:
            if not isinstance(value, str) or not value.strip():
                return False

        if target_columns:
            target_names = {c.name.lower() for c in target_columns}
            if any(v.strip().lower() in target_names for v in values):
                return True

        for value in values:
            if self._parses_as_data(value, _SAMPLE_COLUMNS):
                return False

        if target_columns and len(target_columns) == len(values):
            for value, column in zip(values, target_columns):
                if column.display_type is not DisplayType.TEXT and self._parses_as_data(value, (column,)):
                    return False
        return True

    def _parses_as_data(self, value: str, columns: Sequence[ColumnDescriptor]) -> bool:
        for column in columns:
            try:
                if self.formatter.parse(value, column) is not None:
                    return True
            except FieldValidationError:
                continue
        return False


def parse_file(path: Union[str, Path], hints: Optional[ParseHints] = None) -> ParsedImportData:
    """Read a file from disk and parse it; the file name feeds format sniffing."""
    path = Path(path)
    hints = hints or ParseHints()
    if hints.file_name is None:
        hints = replace(hints, file_name=path.name)
    return FileParser().parse(path.read_bytes(), hints)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _cell_value(value: Any) -> Any:
    """Normalize a pandas/openpyxl cell to a plain Python value (empty -> None)."""
    if _is_missing(value) or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        # numpy scalar
        return value.item()
    return value


def _trim_empty(records: List[Tuple[Any, ...]]) -> List[Tuple[Any, ...]]:
    """Drop fully empty rows and trailing fully empty columns."""
    records = [r for r in records if any(v is not None and v != "" for v in r)]
    if not records:
        return records
    width = max(len(r) for r in records)
    while width > 0 and all(len(r) < width or r[width - 1] is None for r in records):
        width -= 1
    return [tuple(r[:width]) for r in records]
