"""
Write Error Handler - readable messages for rejected row writes

Translates driver error messages (constraint violations, type errors,
missing tables...) into a structured WriteErrorInfo with an error code and
a message suitable for an import error report.
"""

import re
from dataclasses import dataclass
from enum import Enum

import logging
logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Normalized write error categories."""
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    NOT_NULL = "NOT_NULL"
    FOREIGN_KEY = "FOREIGN_KEY"
    DATA_TYPE = "DATA_TYPE"
    VALUE_TOO_LONG = "VALUE_TOO_LONG"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CONNECTION_FAILED = "CONNECTION_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Codes where retrying the next row cannot succeed either
_FATAL_CODES = {
    ErrorCode.TABLE_NOT_FOUND,
    ErrorCode.PERMISSION_DENIED,
    ErrorCode.CONNECTION_FAILED,
}


@dataclass
class WriteErrorInfo:
    """Structured write error information."""
    code: ErrorCode
    message: str  # Readable message for the error report
    recoverable: bool  # False when the remaining rows would fail the same way
    original_error: str  # Original driver message for debugging


# Error patterns for different database types
# Format: (regex_pattern, code, message_template)
# Use {match} in message_template to include regex group(1)

SQLITE_PATTERNS = [
    (
        r"UNIQUE constraint failed: ([\w.]+)",
        ErrorCode.DUPLICATE_KEY,
        "Duplicate value for unique column '{match}'."
    ),
    (
        r"NOT NULL constraint failed: ([\w.]+)",
        ErrorCode.NOT_NULL,
        "Column '{match}' requires a value."
    ),
    (
        r"FOREIGN KEY constraint failed",
        ErrorCode.FOREIGN_KEY,
        "The value references a row that does not exist."
    ),
    (
        r"CHECK constraint failed: (\w+)",
        ErrorCode.CONSTRAINT_VIOLATION,
        "Value rejected by check constraint '{match}'."
    ),
    (
        r"datatype mismatch",
        ErrorCode.DATA_TYPE,
        "Value does not match the column data type."
    ),
    (
        r"no such table: ([\w.]+)",
        ErrorCode.TABLE_NOT_FOUND,
        "Table '{match}' does not exist."
    ),
    (
        r"(?:attempt to write a readonly database|database is locked)",
        ErrorCode.PERMISSION_DENIED,
        "The database cannot be written to right now."
    ),
]

POSTGRESQL_PATTERNS = [
    (
        r"duplicate key value violates unique constraint ['\"]?(\w+)['\"]?",
        ErrorCode.DUPLICATE_KEY,
        "Duplicate value violates unique constraint '{match}'."
    ),
    (
        r"null value in column ['\"]?(\w+)['\"]?.*violates not-null constraint",
        ErrorCode.NOT_NULL,
        "Column '{match}' requires a value."
    ),
    (
        r"violates foreign key constraint ['\"]?(\w+)['\"]?",
        ErrorCode.FOREIGN_KEY,
        "The value references a row that does not exist ('{match}')."
    ),
    (
        r"violates check constraint ['\"]?(\w+)['\"]?",
        ErrorCode.CONSTRAINT_VIOLATION,
        "Value rejected by check constraint '{match}'."
    ),
    (
        r"value too long for type ([\w ]+\(\d+\))",
        ErrorCode.VALUE_TOO_LONG,
        "Value is too long for {match}."
    ),
    (
        r"invalid input syntax for (?:type )?(\w+)",
        ErrorCode.DATA_TYPE,
        "Value is not a valid {match}."
    ),
    (
        r"relation ['\"]?([\w.]+)['\"]? does not exist",
        ErrorCode.TABLE_NOT_FOUND,
        "Table '{match}' does not exist."
    ),
    (
        r"permission denied for (?:table|relation) (\w+)",
        ErrorCode.PERMISSION_DENIED,
        "No permission to write to '{match}'."
    ),
]

SQLSERVER_PATTERNS = [
    (
        r"Violation of (?:PRIMARY KEY|UNIQUE KEY) constraint ['\"]?(\w+)['\"]?",
        ErrorCode.DUPLICATE_KEY,
        "Duplicate value violates constraint '{match}'."
    ),
    (
        r"Cannot insert the value NULL into column ['\"]?(\w+)['\"]?",
        ErrorCode.NOT_NULL,
        "Column '{match}' requires a value."
    ),
    (
        r"conflicted with the FOREIGN KEY constraint ['\"]?(\w+)['\"]?",
        ErrorCode.FOREIGN_KEY,
        "The value references a row that does not exist ('{match}')."
    ),
    (
        r"conflicted with the CHECK constraint ['\"]?(\w+)['\"]?",
        ErrorCode.CONSTRAINT_VIOLATION,
        "Value rejected by check constraint '{match}'."
    ),
    (
        r"String or binary data would be truncated",
        ErrorCode.VALUE_TOO_LONG,
        "Value is too long for the column."
    ),
    (
        r"(?:Conversion failed when converting|Error converting data type)",
        ErrorCode.DATA_TYPE,
        "Value does not match the column data type."
    ),
    (
        r"Invalid object name ['\"]?([\w.\[\]]+)['\"]?",
        ErrorCode.TABLE_NOT_FOUND,
        "Table '{match}' does not exist."
    ),
    (
        r"The INSERT permission was denied",
        ErrorCode.PERMISSION_DENIED,
        "No permission to insert into this table."
    ),
]

MYSQL_PATTERNS = [
    (
        r"Duplicate entry '.*' for key ['\"]?([\w.]+)['\"]?",
        ErrorCode.DUPLICATE_KEY,
        "Duplicate value for key '{match}'."
    ),
    (
        r"Column ['\"]?(\w+)['\"]? cannot be null",
        ErrorCode.NOT_NULL,
        "Column '{match}' requires a value."
    ),
    (
        r"a foreign key constraint fails",
        ErrorCode.FOREIGN_KEY,
        "The value references a row that does not exist."
    ),
    (
        r"Data too long for column ['\"]?(\w+)['\"]?",
        ErrorCode.VALUE_TOO_LONG,
        "Value is too long for column '{match}'."
    ),
    (
        r"Incorrect \w+ value: .* for column ['\"]?(\w+)['\"]?",
        ErrorCode.DATA_TYPE,
        "Value does not match the data type of column '{match}'."
    ),
    (
        r"Table ['\"]?([\w.]+)['\"]? doesn't exist",
        ErrorCode.TABLE_NOT_FOUND,
        "Table '{match}' does not exist."
    ),
]

# Generic patterns (for all database types)
GENERIC_PATTERNS = [
    (
        r"(?:unique|duplicate)",
        ErrorCode.DUPLICATE_KEY,
        "Duplicate value for a unique column."
    ),
    (
        r"(?:not null|cannot be null)",
        ErrorCode.NOT_NULL,
        "A required column has no value."
    ),
    (
        r"foreign key",
        ErrorCode.FOREIGN_KEY,
        "The value references a row that does not exist."
    ),
    (
        r"constraint",
        ErrorCode.CONSTRAINT_VIOLATION,
        "Value rejected by a table constraint."
    ),
    (
        r"(?:permission|access denied|not authorized)",
        ErrorCode.PERMISSION_DENIED,
        "No permission to write to this table."
    ),
    (
        r"(?:connection|timeout|timed out|refused|unreachable|server closed)",
        ErrorCode.CONNECTION_FAILED,
        "Lost connection to the database server."
    ),
]

_PATTERNS_BY_TYPE = {
    "sqlite": SQLITE_PATTERNS,
    "postgresql": POSTGRESQL_PATTERNS,
    "sqlserver": SQLSERVER_PATTERNS,
    "mysql": MYSQL_PATTERNS,
}


def describe_write_error(error: Exception, db_type: str = "") -> WriteErrorInfo:
    """
    Parse a driver error raised by a single-row write.

    Args:
        error: The exception that occurred
        db_type: Database type (sqlite, postgresql, sqlserver, mysql);
            empty tries every database family

    Returns:
        WriteErrorInfo with a code and a readable message
    """
    original_error = str(error)

    specific = _PATTERNS_BY_TYPE.get(db_type)
    if specific is not None:
        patterns = specific + GENERIC_PATTERNS
    else:
        patterns = (
            SQLITE_PATTERNS +
            POSTGRESQL_PATTERNS +
            SQLSERVER_PATTERNS +
            MYSQL_PATTERNS +
            GENERIC_PATTERNS
        )

    for pattern, code, message_template in patterns:
        match = re.search(pattern, original_error, re.IGNORECASE)
        if match:
            message = message_template
            if "{match}" in message and match.groups():
                message = message.replace("{match}", match.group(1))
            return WriteErrorInfo(
                code=code,
                message=message,
                recoverable=code not in _FATAL_CODES,
                original_error=original_error
            )

    # No pattern matched - keep the driver text so the report stays useful
    message = original_error.strip() or type(error).__name__
    return WriteErrorInfo(
        code=ErrorCode.UNKNOWN_ERROR,
        message=f"Write failed: {message[:500]}",
        recoverable=True,
        original_error=original_error
    )
