"""Utility modules - write error descriptions and SQL log formatting."""

from .error_handler import ErrorCode, WriteErrorInfo, describe_write_error
from .sql_formatter import format_for_log

__all__ = ["ErrorCode", "WriteErrorInfo", "describe_write_error", "format_for_log"]
