"""
SQL Formatter - readable query text for debug logs.

Only the query text with its placeholders is ever formatted; parameter
values never reach the log.
"""

import sqlparse

import logging
logger = logging.getLogger(__name__)


def format_for_log(sql_text: str) -> str:
    """
    Pretty-print SQL for a DEBUG log line.

    Args:
        sql_text: SQL query text (placeholders, no values)

    Returns:
        Reindented SQL with upper-case keywords
    """
    if not sql_text or not sql_text.strip():
        return sql_text

    return sqlparse.format(
        sql_text,
        reindent=True,
        keyword_case='upper',
        indent_width=2,
        use_space_around_operators=True,
        wrap_after=120
    )
