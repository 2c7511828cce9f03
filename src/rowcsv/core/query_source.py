"""Query text resolution for rowcsv.

The SQL to export comes from ``-e`` (inline), a file argument or stdin,
in that order of precedence.  The result is wrapped in a server-side cursor
declaration, so it must be a single statement: trailing semicolons and
whitespace are removed and empty text is rejected.
"""

from __future__ import annotations

import sys
from pathlib import Path

from rowcsv.core.exceptions import InputError


def _read_query(inline: str | None, file_path: str | None) -> str:
    if inline is not None:
        return inline

    if file_path is not None:
        p = Path(file_path)
        if not p.is_file():
            msg = (
                f"Query file not found: {file_path}\n"
                "Use -e for inline queries or pipe query via stdin."
            )
            raise InputError(msg)
        return p.read_text(encoding="utf-8")

    if not sys.stdin.isatty():
        return sys.stdin.read()

    msg = "No query provided. Use -e, file path, or pipe to stdin."
    raise InputError(msg)


def normalize_query(sql: str) -> str:
    """Strip surrounding whitespace and trailing statement terminators."""
    sql = sql.strip()
    while sql.endswith(";"):
        sql = sql[:-1].rstrip()
    return sql


def resolve_query_source(inline: str | None, file_path: str | None) -> str:
    """Resolve the export query from inline text, a file or stdin.

    Raises InputError when no source is available or the query is empty.
    """
    sql = normalize_query(_read_query(inline, file_path))
    if not sql:
        raise InputError("Query is empty.")
    return sql
