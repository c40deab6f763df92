"""
Tests for per-column value conversion.
"""
from datetime import date, datetime, time
from decimal import Decimal

import pytest

from dataforge_exchange.core.type_formatter import BooleanState, DateOrder, TypeFormatter, boolean_state
from dataforge_exchange.database import ColumnDescriptor, DisplayType
from dataforge_exchange.errors import FieldValidationError


def column(display_type, **kwargs):
    return ColumnDescriptor("col", display_type.value.upper(), display_type, **kwargs)


TEXT = column(DisplayType.TEXT, precision=10)
BOOL = column(DisplayType.BOOLEAN)
INT = column(DisplayType.INTEGER)
DEC = column(DisplayType.DECIMAL, precision=10, scale=2)
DATE = column(DisplayType.DATE)
TIME = column(DisplayType.TIME)
STAMP = column(DisplayType.TIMESTAMP)


@pytest.fixture
def formatter():
    return TypeFormatter()


class TestParseText:
    def test_text_kept_verbatim(self, formatter):
        assert formatter.parse("  a b ", TEXT) == "  a b "

    def test_empty_string_is_not_null_for_text(self, formatter):
        assert formatter.parse("", TEXT) == ""
        assert formatter.parse(None, TEXT) is None

    def test_too_long_rejected(self, formatter):
        with pytest.raises(FieldValidationError) as exc_info:
            formatter.parse("x" * 11, TEXT)
        assert exc_info.value.column == "col"
        assert "maximum 10" in str(exc_info.value)

    def test_typed_cell_stringified(self, formatter):
        assert formatter.parse(42.0, TEXT) == "42"
        assert formatter.parse(True, TEXT) == "true"


class TestParseBoolean:
    @pytest.mark.parametrize("raw", ["1", "true", "TRUE", "yes", "Y", "t", True, 1])
    def test_true_values(self, formatter, raw):
        assert formatter.parse(raw, BOOL) is True

    @pytest.mark.parametrize("raw", ["0", "false", "No", "n", "F", False, 0])
    def test_false_values(self, formatter, raw):
        assert formatter.parse(raw, BOOL) is False

    def test_blank_is_null(self, formatter):
        assert formatter.parse("  ", BOOL) is None

    def test_invalid_rejected(self, formatter):
        with pytest.raises(FieldValidationError, match="not a valid boolean"):
            formatter.parse("maybe", BOOL)


class TestParseNumbers:
    @pytest.mark.parametrize("raw,expected", [("42", 42), ("-7", -7), ("1,000", 1000), ("12.0", 12), (5, 5)])
    def test_integers(self, formatter, raw, expected):
        assert formatter.parse(raw, INT) == expected

    @pytest.mark.parametrize("raw", ["12.5", "abc", "1e5", "--1"])
    def test_invalid_integers(self, formatter, raw):
        with pytest.raises(FieldValidationError):
            formatter.parse(raw, INT)

    def test_decimal_exact(self, formatter):
        outcome = formatter.parse_outcome("19.99", DEC)
        assert outcome.value == Decimal("19.99")
        assert not outcome.rounded

    def test_decimal_rounded_half_up(self, formatter):
        outcome = formatter.parse_outcome("1,234.565", DEC)
        assert outcome.value == Decimal("1234.57")
        assert outcome.rounded

    def test_decimal_padded_to_scale(self, formatter):
        assert str(formatter.parse("5", DEC)) == "5.00"

    def test_decimal_overflow_rejected(self, formatter):
        with pytest.raises(FieldValidationError, match="does not fit"):
            formatter.parse("123456789.00", DEC)

    def test_decimal_without_scale_untouched(self, formatter):
        free = column(DisplayType.DECIMAL)
        outcome = formatter.parse_outcome("3.14159", free)
        assert outcome.value == Decimal("3.14159")
        assert not outcome.rounded

    def test_float_input(self, formatter):
        assert formatter.parse(0.1, DEC) == Decimal("0.10")


class TestParseTemporal:
    @pytest.mark.parametrize("raw", ["2024-03-04", "03/04/2024", "04-03-2024", "04.03.2024",
                                     "Mar 04, 2024", "4 March 2024", "2024-03-04 00:00:00"])
    def test_dates_us_order(self, formatter, raw):
        assert formatter.parse(raw, DATE) == date(2024, 3, 4)

    def test_dates_eu_order(self):
        formatter = TypeFormatter(date_order=DateOrder.EU)
        assert formatter.parse("03/04/2024", DATE) == date(2024, 4, 3)

    def test_date_with_time_of_day_rejected(self, formatter):
        with pytest.raises(FieldValidationError, match="MM/DD/YYYY"):
            formatter.parse("2024-03-04 10:30:00", DATE)

    def test_invalid_date_rejected(self, formatter):
        with pytest.raises(FieldValidationError):
            formatter.parse("2024-02-30", DATE)

    @pytest.mark.parametrize("raw,expected", [
        ("14:30", time(14, 30)),
        ("14:30:15", time(14, 30, 15)),
        ("9:30 pm", time(21, 30)),
        ("9:30p", time(21, 30)),
        ("12:05:00 AM", time(0, 5)),
    ])
    def test_times(self, formatter, raw, expected):
        assert formatter.parse(raw, TIME) == expected

    def test_invalid_time_rejected(self, formatter):
        with pytest.raises(FieldValidationError):
            formatter.parse("25:99", TIME)

    @pytest.mark.parametrize("raw,expected", [
        ("2024-03-04 10:30:00", datetime(2024, 3, 4, 10, 30)),
        ("2024-03-04T10:30", datetime(2024, 3, 4, 10, 30)),
        ("03/04/2024 2:15 PM", datetime(2024, 3, 4, 14, 15)),
        ("2024-03-04", datetime(2024, 3, 4)),
    ])
    def test_timestamps(self, formatter, raw, expected):
        assert formatter.parse(raw, STAMP) == expected

    def test_invalid_timestamp_rejected(self, formatter):
        with pytest.raises(FieldValidationError, match="YYYY-MM-DD HH:MM:SS"):
            formatter.parse("yesterday", STAMP)


class TestToDatabase:
    def test_boolean_wire_values(self, formatter):
        assert formatter.to_database("yes", BOOL) == 1
        assert formatter.to_database(False, BOOL) == 0
        assert formatter.to_database(None, BOOL) is None

    def test_decimal_as_exact_string(self, formatter):
        assert formatter.to_database("10.5", DEC) == "10.50"
        assert formatter.to_database(Decimal("0.1"), DEC) == "0.1"

    def test_temporal_wire_format(self, formatter):
        assert formatter.to_database("03/04/2024", DATE) == "2024-03-04"
        assert formatter.to_database(time(9, 5), TIME) == "09:05:00"
        assert formatter.to_database(datetime(2024, 3, 4, 10, 30, 0, 120), STAMP) == "2024-03-04 10:30:00.000120"

    def test_blank_non_text_is_null(self, formatter):
        assert formatter.to_database("", INT) is None
        assert formatter.to_database("", DATE) is None

    def test_text_passthrough(self, formatter):
        assert formatter.to_database("abc", TEXT) == "abc"


class TestToDisplay:
    def test_null_is_empty(self, formatter):
        assert formatter.to_display(None, TEXT) == ""

    def test_boolean(self, formatter):
        assert formatter.to_display(1, BOOL) == "true"
        assert formatter.to_display(0, BOOL) == "false"

    def test_decimal_keeps_scale(self, formatter):
        assert formatter.to_display(Decimal("10.50"), DEC) == "10.50"

    @pytest.mark.parametrize("value,expected", [
        (1e-05, "0.00001"),
        (2.5e20, "250000000000000000000"),
        (0.1, "0.1"),
        (Decimal("1E+2"), "100"),
    ])
    def test_decimal_never_uses_exponent(self, formatter, value, expected):
        free = column(DisplayType.DECIMAL)
        text = formatter.to_display(value, free)
        assert text == expected
        assert formatter.parse(text, free) == Decimal(expected)

    def test_integer_floats(self, formatter):
        assert formatter.to_display(3.0, INT) == "3"
        assert formatter.to_display(2.5, INT) == "2.5"
        assert formatter.to_display(7, INT) == "7"

    def test_temporal_values_iso(self, formatter):
        assert formatter.to_display(date(2024, 1, 5), DATE) == "2024-01-05"
        assert formatter.to_display("2024-01-05 08:00:00", STAMP) == "2024-01-05 08:00:00"

    def test_unparseable_temporal_string_passed_through(self, formatter):
        assert formatter.to_display("not a date", DATE) == "not a date"

    def test_bytes_as_hex(self, formatter):
        assert formatter.to_display(b"\x01\xff", TEXT) == "01ff"


class TestBooleanState:
    @pytest.mark.parametrize("value,state", [
        (1, BooleanState.CHECKED),
        (True, BooleanState.CHECKED),
        ("0", BooleanState.UNCHECKED),
        (None, BooleanState.INDETERMINATE),
        ("weird", BooleanState.INDETERMINATE),
    ])
    def test_states(self, formatter, value, state):
        assert boolean_state(value) is state
        assert formatter.boolean_state(value) is state
