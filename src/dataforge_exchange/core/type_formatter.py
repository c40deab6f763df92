"""
Type Formatter - per-column conversion between wire, display and database values.

Three directions:
- to_display(value, column): database value -> string for CSV cells and grids
- parse(text, column): user/file input -> typed Python value (validated)
- to_database(value, column): typed value -> wire value sent as a parameter

NULL (None) and the empty string are kept apart: parse("") is None for
non-text columns and "" for text columns; to_display(None) is "".
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Tuple

import logging

from ..database.models import ColumnDescriptor, DisplayType
from ..errors import FieldValidationError

logger = logging.getLogger(__name__)


class DateOrder(Enum):
    """How ambiguous NN/NN/YYYY dates are read."""
    US = "us"  # MM/DD/YYYY
    EU = "eu"  # DD/MM/YYYY


class BooleanState(Enum):
    """Tri-state checkbox rendering of a boolean column value."""
    CHECKED = "checked"
    UNCHECKED = "unchecked"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class ParseOutcome:
    """Parsed value plus whether a decimal had to be rounded to the column scale."""
    value: Any
    rounded: bool = False


TRUE_VALUES = frozenset({"1", "true", "yes", "y", "t", "checked"})
FALSE_VALUES = frozenset({"0", "false", "no", "n", "f", "unchecked"})

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)$")
# "9:30 pm", "9:30p", "9:30 P.M." -> "9:30 PM"
_AMPM_RE = re.compile(r"\s*([ap])\.?\s*(?:m\.?)?$", re.IGNORECASE)

_DATE_FORMATS_HEAD = ("%Y-%m-%d",)
_DATE_FORMATS_US = ("%m/%d/%Y",)
_DATE_FORMATS_EU = ("%d/%m/%Y",)
_DATE_FORMATS_TAIL = (
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%d-%b-%Y",
)
_TIME_FORMATS = (
    "%H:%M:%S",
    "%H:%M",
    "%H:%M:%S.%f",
    "%I:%M:%S %p",
    "%I:%M %p",
)

WIRE_DATE_FORMAT = "%Y-%m-%d"
WIRE_TIME_FORMAT = "%H:%M:%S"
WIRE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class TypeFormatter:
    """
    Converts values for one column type at a time.

    Usage:
        formatter = TypeFormatter(date_order=DateOrder.EU)
        formatter.parse("05/01/2026", column)      # date(2026, 1, 5)
        formatter.to_database(date(2026, 1, 5), column)  # "2026-01-05"
    """

    def __init__(self, date_order: DateOrder = DateOrder.US):
        self.date_order = date_order
        middle = _DATE_FORMATS_US if date_order is DateOrder.US else _DATE_FORMATS_EU
        self._date_formats: Tuple[str, ...] = _DATE_FORMATS_HEAD + middle + _DATE_FORMATS_TAIL

    # ==================== Display ====================

    def to_display(self, value: Any, column: ColumnDescriptor) -> str:
        """Render a database value as display text ("" for NULL)."""
        if value is None:
            return ""

        display_type = column.display_type
        if display_type is DisplayType.BOOLEAN:
            flag = _as_bool(value)
            if flag is None:
                return str(value)
            return "true" if flag else "false"

        if display_type in (DisplayType.DATE, DisplayType.TIME, DisplayType.TIMESTAMP):
            typed = value
            if isinstance(value, str):
                try:
                    typed = self.parse(value, column)
                except FieldValidationError:
                    return value
            return _render_temporal(typed)

        if display_type in (DisplayType.INTEGER, DisplayType.DECIMAL) and isinstance(value, (float, Decimal)):
            return _plain_number(value, whole=display_type is DisplayType.INTEGER)
        if display_type is DisplayType.INTEGER and isinstance(value, int):
            return str(int(value))

        if isinstance(value, bytes):
            return value.hex()
        return str(value)

    def boolean_state(self, value: Any) -> BooleanState:
        return boolean_state(value)

    # ==================== Input Parsing ====================

    def parse(self, value: Any, column: ColumnDescriptor) -> Any:
        """
        Parse and validate one input value for a column.

        Raises:
            FieldValidationError: If the value does not fit the column
        """
        return self.parse_outcome(value, column).value

    def parse_outcome(self, value: Any, column: ColumnDescriptor) -> ParseOutcome:
        """Like parse(), but also reports decimal rounding."""
        if value is None:
            return ParseOutcome(None)

        display_type = column.display_type
        if display_type is DisplayType.TEXT:
            return ParseOutcome(self._parse_text(value, column))

        if isinstance(value, str):
            value = value.strip()
            if value == "":
                return ParseOutcome(None)

        if display_type is DisplayType.BOOLEAN:
            return ParseOutcome(self._parse_boolean(value, column))
        if display_type is DisplayType.INTEGER:
            return ParseOutcome(self._parse_integer(value, column))
        if display_type is DisplayType.DECIMAL:
            return self._parse_decimal(value, column)
        if display_type is DisplayType.DATE:
            return ParseOutcome(self._parse_date(value, column))
        if display_type is DisplayType.TIME:
            return ParseOutcome(self._parse_time(value, column))
        if display_type is DisplayType.TIMESTAMP:
            return ParseOutcome(self._parse_timestamp(value, column))
        raise FieldValidationError(f"Unsupported column type {display_type}", column.name)

    # ==================== Database ====================

    def to_database(self, value: Any, column: ColumnDescriptor) -> Any:
        """
        Convert a value to the wire value bound as a query parameter.

        Strings are parsed first, so raw file input can be passed directly.
        Booleans become 1/0, temporal values ISO-like strings, decimals
        exact decimal strings.
        """
        if isinstance(value, str) or column.display_type is DisplayType.BOOLEAN:
            value = self.parse(value, column)
        if value is None:
            return None

        display_type = column.display_type
        if display_type is DisplayType.BOOLEAN:
            return 1 if value else 0
        if display_type is DisplayType.INTEGER:
            return int(value)
        if display_type is DisplayType.DECIMAL:
            return format(Decimal(str(value)) if isinstance(value, float) else Decimal(value), "f")
        if display_type in (DisplayType.DATE, DisplayType.TIME, DisplayType.TIMESTAMP):
            if not isinstance(value, (date, time)):
                value = self.parse(value, column)
            return _render_temporal(value)
        return value

    # ==================== Per-type Parsers ====================

    def _parse_text(self, value: Any, column: ColumnDescriptor) -> str:
        text = value if isinstance(value, str) else _stringify(value)
        if column.precision and len(text) > column.precision:
            raise FieldValidationError(
                f"Value for '{column.name}' is {len(text)} characters long "
                f"(maximum {column.precision})",
                column.name
            )
        return text

    def _parse_boolean(self, value: Any, column: ColumnDescriptor) -> bool:
        flag = _as_bool(value)
        if flag is None:
            raise FieldValidationError(
                f"'{value}' is not a valid boolean for '{column.name}' "
                f"(use true/false, yes/no, 1/0)",
                column.name
            )
        return flag

    def _parse_integer(self, value: Any, column: ColumnDescriptor) -> int:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        number = self._to_decimal(value, column, "integer")
        if number != number.to_integral_value():
            raise FieldValidationError(
                f"'{value}' is not a whole number for '{column.name}'", column.name
            )
        return int(number)

    def _parse_decimal(self, value: Any, column: ColumnDescriptor) -> ParseOutcome:
        number = self._to_decimal(value, column, "number")
        rounded = False

        if column.scale is not None:
            quantum = Decimal(1).scaleb(-column.scale)
            quantized = number.quantize(quantum, rounding=ROUND_HALF_UP)
            rounded = quantized != number
            number = quantized

        if column.precision is not None:
            integer_digits = column.precision - (column.scale or 0)
            if integer_digits >= 0 and abs(number) >= Decimal(10) ** integer_digits:
                raise FieldValidationError(
                    f"'{value}' does not fit '{column.name}' "
                    f"(precision {column.precision}, scale {column.scale or 0})",
                    column.name
                )

        return ParseOutcome(number, rounded)

    def _to_decimal(self, value: Any, column: ColumnDescriptor, kind: str) -> Decimal:
        if isinstance(value, bool):
            return Decimal(int(value))
        if isinstance(value, (int, Decimal)):
            return Decimal(value)
        if isinstance(value, float):
            return Decimal(repr(value))

        text = str(value).strip().replace(",", "")
        if not _NUMBER_RE.match(text):
            raise FieldValidationError(
                f"'{value}' is not a valid {kind} for '{column.name}'", column.name
            )
        try:
            return Decimal(text)
        except InvalidOperation:
            raise FieldValidationError(
                f"'{value}' is not a valid {kind} for '{column.name}'", column.name
            ) from None

    def _parse_date(self, value: Any, column: ColumnDescriptor) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value)
        parsed = self._match_date(text)
        if parsed is not None:
            return parsed

        # A midnight timestamp is accepted for a date column
        stamp = self._match_timestamp(text)
        if stamp is not None and stamp.time() == time(0, 0):
            return stamp.date()

        raise FieldValidationError(
            f"'{value}' is not a valid date for '{column.name}' "
            f"(expected YYYY-MM-DD or {self._local_date_hint()})",
            column.name
        )

    def _parse_time(self, value: Any, column: ColumnDescriptor) -> time:
        if isinstance(value, datetime):
            return value.time()
        if isinstance(value, time):
            return value

        parsed = _match_time(str(value))
        if parsed is None:
            raise FieldValidationError(
                f"'{value}' is not a valid time for '{column.name}' "
                f"(expected HH:MM:SS, HH:MM or 12-hour time with AM/PM)",
                column.name
            )
        return parsed

    def _parse_timestamp(self, value: Any, column: ColumnDescriptor) -> datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time(0, 0))

        text = str(value)
        parsed = self._match_timestamp(text)
        if parsed is None:
            only_date = self._match_date(text)
            if only_date is not None:
                parsed = datetime.combine(only_date, time(0, 0))
        if parsed is None:
            raise FieldValidationError(
                f"'{value}' is not a valid timestamp for '{column.name}' "
                f"(expected YYYY-MM-DD HH:MM:SS)",
                column.name
            )
        return parsed

    # ==================== Format Matching ====================

    def _match_date(self, text: str) -> Optional[date]:
        text = text.strip()
        for fmt in self._date_formats:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return None

    def _match_timestamp(self, text: str) -> Optional[datetime]:
        text = text.strip()
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass

        # Split "date time" / "dateTtime" and parse each half with the
        # date and time format lists
        match = re.match(r"^(.+?\d)[T ](\d{1,2}:\d{2}.*)$", text)
        if not match:
            return None
        date_part = self._match_date(match.group(1))
        time_part = _match_time(match.group(2))
        if date_part is None or time_part is None:
            return None
        return datetime.combine(date_part, time_part)

    def _local_date_hint(self) -> str:
        return "MM/DD/YYYY" if self.date_order is DateOrder.US else "DD/MM/YYYY"


def boolean_state(value: Any) -> BooleanState:
    """Map a boolean column value (1/0/None, bools or text) to a checkbox state."""
    flag = _as_bool(value) if value is not None else None
    if flag is None:
        return BooleanState.INDETERMINATE
    return BooleanState.CHECKED if flag else BooleanState.UNCHECKED


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        if value == 1:
            return True
        if value == 0:
            return False
        return None
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


def _match_time(text: str) -> Optional[time]:
    text = _AMPM_RE.sub(lambda m: f" {m.group(1).upper()}M", text.strip())
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def _render_temporal(value: Any) -> str:
    if isinstance(value, datetime):
        rendered = value.strftime(WIRE_TIMESTAMP_FORMAT)
        if value.microsecond:
            rendered += f".{value.microsecond:06d}"
        return rendered
    if isinstance(value, date):
        return value.strftime(WIRE_DATE_FORMAT)
    if isinstance(value, time):
        rendered = value.strftime(WIRE_TIME_FORMAT)
        if value.microsecond:
            rendered += f".{value.microsecond:06d}"
        return rendered
    return str(value)


def _plain_number(value: Any, whole: bool = False) -> str:
    """
    Fixed-point text for a float or Decimal, never exponent notation.

    whole=True drops the fraction of an integral value (3.0 -> "3") for
    integer columns; a fractional value is rendered as-is, not truncated.
    """
    if isinstance(value, float):
        if not math.isfinite(value):
            return str(value)
        value = Decimal(repr(value))
    if not value.is_finite():
        return str(value)
    if whole and value == value.to_integral_value():
        value = value.to_integral_value()
    return format(value, "f")


def _stringify(value: Any) -> str:
    """Text rendering of a typed spreadsheet cell bound for a text column."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return _render_temporal(value)
    return str(value)
