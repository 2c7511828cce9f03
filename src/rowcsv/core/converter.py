"""Forward-only conversion of a result set into CSV lines.

RowConverter owns its source exclusively.  It fetches rows in batches of
``batch_size``, formats and encodes one row per ``next_row()`` call, and
moves from ``open`` to ``exhausted`` exactly once, when a fetch returns no
rows.  There is no way to restart a conversion.
"""

from __future__ import annotations

import os
from collections import deque
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TextIO

import sentry_sdk
import structlog
from pydantic import ValidationError

from rowcsv.core.catalog import describe
from rowcsv.core.encoder import encode_header, encode_row
from rowcsv.core.exceptions import (
    ConfigError,
    ConversionError,
    FetchError,
    OutputError,
)
from rowcsv.core.formatter import FieldFormatter
from rowcsv.core.models import ColumnDescriptor, CsvOptions, TypeKind

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from rowcsv.core.models import RowSource

CRLF = "\r\n"


class ConverterState(StrEnum):
    OPEN = "open"
    EXHAUSTED = "exhausted"


def build_options(options: CsvOptions | None = None, **changes: Any) -> CsvOptions:
    """Return ``options`` with ``changes`` applied, validated.

    Raises ConfigError on invalid values.
    """
    data = options.model_dump() if options is not None else {}
    data.update(changes)
    try:
        return CsvOptions.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid CSV options: {e}") from e


class RowConverter:
    """Pull CSV lines out of a DB-API style cursor.

    Usage::

        with RowConverter(cursor, separator=";") as converter:
            header = converter.header_row()
            while (line := converter.next_row()) is not None:
                ...

    ``next_row()`` returns ``None`` once the source is drained; that is the
    terminal state, not an error.  A converter is also an iterator over its
    data rows.
    """

    def __init__(
        self, source: RowSource, options: CsvOptions | None = None, **changes: Any
    ) -> None:
        self._options = build_options(options, **changes)
        self._columns: tuple[ColumnDescriptor, ...] = tuple(describe(source))
        self._kinds = [c.type_kind for c in self._columns]
        self._source = source
        self._formatter = FieldFormatter(self._options)
        self._buffer: deque[Sequence[Any]] = deque()
        self._state = ConverterState.OPEN
        self._row_count = 0
        self._batches = 0
        self._started = False
        self._failed = False

    def __enter__(self) -> RowConverter:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __iter__(self) -> RowConverter:
        return self

    def __next__(self) -> str:
        line = self.next_row()
        if line is None:
            raise StopIteration
        return line

    @property
    def columns(self) -> tuple[ColumnDescriptor, ...]:
        return self._columns

    @property
    def options(self) -> CsvOptions:
        return self._options

    @property
    def row_count(self) -> int:
        """Data rows produced so far; the header never counts."""
        return self._row_count

    @property
    def state(self) -> ConverterState:
        return self._state

    @property
    def exhausted(self) -> bool:
        return self._state is ConverterState.EXHAUSTED

    def configure(self, **changes: Any) -> CsvOptions:
        """Change CSV options.  Only allowed before the first fetch."""
        if self._started:
            raise ConfigError("CSV options cannot change once fetching has begun")
        self._options = build_options(self._options, **changes)
        self._formatter = FieldFormatter(self._options)
        # Only a rejected picture can fail before the first fetch.
        self._failed = False
        return self._options

    def header_row(self) -> str:
        return encode_header(self._columns, self._options)

    def next_row(self) -> str | None:
        """Return the next CSV line, or None once the source is exhausted."""
        if self._state is ConverterState.EXHAUSTED:
            return None
        if self._failed:
            raise ConversionError("Converter cannot be reused after a failed conversion")

        if not self._buffer:
            self._fetch_batch()
            if not self._buffer:
                self._state = ConverterState.EXHAUSTED
                structlog.get_logger().debug(
                    "source exhausted", row_count=self._row_count, batches=self._batches
                )
                return None

        raw = self._buffer.popleft()
        try:
            line = self._encode(raw)
        except ConversionError:
            self._failed = True
            raise
        self._row_count += 1
        return line

    def iter_rows(self, include_header: bool = False) -> Iterator[str]:
        """Lazily yield CSV lines.

        The header, when requested, is yielded only once a first data row
        exists, so a zero-row source yields nothing at all.
        """
        first = self.next_row()
        if first is None:
            return
        if include_header:
            yield self.header_row()
        yield first
        while True:
            line = self.next_row()
            if line is None:
                return
            yield line

    def collect_all(self, include_header: bool = False) -> str | None:
        """Drain the source into one text blob with CRLF between rows.

        Returns None when no data row was produced, even with a header.
        """
        lines = list(self.iter_rows(include_header))
        if not lines:
            return None
        return CRLF.join(lines)

    def write_all(self, sink: str | os.PathLike[str] | TextIO, include_header: bool = False) -> int:
        """Drain the source into a file path or a writable text stream.

        A path is always created (empty when there are no rows) and written
        with the platform's native line endings.  Returns the number of data
        rows written.
        """
        if isinstance(sink, (str, os.PathLike)):
            try:
                f = open(sink, "w", encoding="utf-8")  # noqa: SIM115
            except OSError as e:
                raise OutputError(f"Cannot open output file {os.fspath(sink)}: {e}") from e
            with f:
                return self._write_lines(f, include_header)
        return self._write_lines(sink, include_header)

    def close(self) -> None:
        """Close the source, when it supports closing, and stop converting."""
        close = getattr(self._source, "close", None)
        if close is not None:
            close()
        self._buffer.clear()
        self._state = ConverterState.EXHAUSTED

    def _write_lines(self, stream: TextIO, include_header: bool) -> int:
        before = self._row_count
        for line in self.iter_rows(include_header):
            try:
                stream.write(line + "\n")
            except OSError as e:
                raise OutputError(f"Cannot write CSV output: {e}") from e
        return self._row_count - before

    def _fetch_batch(self) -> None:
        log = structlog.get_logger()
        if not self._started:
            try:
                self._formatter.validate(self._columns)
            except ConversionError:
                self._failed = True
                raise
            self._started = True

        size = self._options.batch_size
        with sentry_sdk.start_span(op="db.fetch", name=f"fetchmany({size})") as span:
            try:
                rows = self._source.fetchmany(size)
            except Exception as e:
                self._failed = True
                span.set_status("internal_error")
                log.error("fetch failed", batch=self._batches + 1, error=str(e))
                raise FetchError(f"Fetch failed after {self._row_count} rows: {e}") from e
            span.set_data("row_count", len(rows))

        self._batches += 1
        self._buffer.extend(rows)
        log.debug("fetched batch", batch=self._batches, rows=len(rows), batch_size=size)

    def _encode(self, raw: Sequence[Any]) -> str:
        if len(raw) != len(self._columns):
            msg = f"Row {self._row_count + 1} has {len(raw)} values, expected {len(self._columns)}"
            raise FetchError(msg)
        fields = [
            self._formatter.format(value, column)
            for value, column in zip(raw, self._columns, strict=True)
        ]
        kinds = self._kinds
        if self._options.quote_all_strings:
            # Untyped columns count as strings when the driver returned a str.
            kinds = [
                TypeKind.TEXT if kind is TypeKind.OTHER and isinstance(value, str) else kind
                for kind, value in zip(kinds, raw, strict=True)
            ]
        return encode_row(fields, self._options, kinds)
