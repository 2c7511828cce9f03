"""PostgreSQL row source for rowcsv.

``PgClient.open_cursor`` declares a named server-side cursor, so each
``fetchmany`` a RowConverter issues is a round trip to the server rather
than a slice of a buffered result.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import psycopg
import psycopg.errors
import sentry_sdk
import structlog
from psycopg import sql as pgsql

from rowcsv.core.exceptions import NetworkError, RowCsvError, TimeoutError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rowcsv.core.config import ResolvedConfig

_CURSOR_NAME = "rowcsv_export"

_CONNECT_PARAMS = (
    "host",
    "port",
    "dbname",
    "user",
    "password",
    "sslmode",
    "connect_timeout",
    "application_name",
)

# psycopg error -> (rowcsv error, span status, message prefix); first match wins
_ERROR_MAP: tuple[tuple[type[psycopg.Error], type[RowCsvError], str, str], ...] = (
    (psycopg.errors.QueryCanceled, TimeoutError, "deadline_exceeded", "Query timed out"),
    (psycopg.errors.SyntaxError, RowCsvError, "invalid_argument", "SQL error"),
    (psycopg.errors.UndefinedTable, RowCsvError, "not_found", "SQL error"),
    (psycopg.OperationalError, NetworkError, "unavailable", "Database error"),
)


class PgClient:
    """Opens server-side cursors on one lazily created connection."""

    def __init__(self, config: ResolvedConfig) -> None:
        self.config = config
        self._connection: psycopg.Connection[Any] | None = None

    def __enter__(self) -> PgClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def target(self) -> str:
        return f"{self.config.host}:{self.config.port}/{self.config.dbname}"

    def _connect(self) -> psycopg.Connection[Any]:
        if self._connection is not None and not self._connection.closed:
            return self._connection

        params = {name: getattr(self.config, name) for name in _CONNECT_PARAMS}
        try:
            self._connection = psycopg.connect(**params, autocommit=True)
        except psycopg.OperationalError as e:
            raise NetworkError(f"Cannot connect to {self.target}: {e}") from e
        structlog.get_logger().debug("connected", target=self.target)
        return self._connection

    @contextmanager
    def open_cursor(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        batch_size: int = 100,
    ) -> Iterator[psycopg.ServerCursor[Any]]:
        """Declare ``sql`` as a server-side cursor and yield it unfetched.

        The cursor and its transaction stay open until the ``with`` block
        ends.  The statement timeout applies to every fetch inside it.

        Raises:
            NetworkError: The server could not be reached.
            TimeoutError: The statement ran past ``default_timeout``.
            RowCsvError: The server rejected the SQL.
        """
        log = structlog.get_logger()
        conn = self._connect()
        one_line = " ".join(sql.split())
        timeout = pgsql.SQL("SET LOCAL statement_timeout = {}").format(
            int(self.config.default_timeout * 1000)
        )

        log.debug("declaring cursor", sql=one_line, batch_size=batch_size)
        with sentry_sdk.start_span(op="db.query", name=one_line[:100]) as span:
            started = time.monotonic()
            try:
                with conn.transaction(), conn.cursor(name=_CURSOR_NAME) as cur:
                    conn.execute(timeout)
                    cur.itersize = batch_size
                    cur.execute(sql, params)
                    elapsed_ms = (time.monotonic() - started) * 1000
                    span.set_data("duration_ms", elapsed_ms)
                    log.debug("cursor declared", duration_ms=f"{elapsed_ms:.1f}")
                    yield cur
            except psycopg.Error as e:
                translated = self._translate(e, span, one_line)
                if translated is None:
                    raise
                raise translated from e

    def _translate(self, error: psycopg.Error, span: Any, sql: str) -> RowCsvError | None:
        for source, target, status, prefix in _ERROR_MAP:
            if isinstance(error, source):
                break
        else:
            return None
        span.set_status(status)
        structlog.get_logger().error(prefix.lower(), sql=sql, error=str(error))
        if target is TimeoutError:
            return TimeoutError(f"{prefix} after {self.config.default_timeout}s: {error}")
        return target(f"{prefix}: {error}")

    def close(self) -> None:
        """Close the connection, if one was opened."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
