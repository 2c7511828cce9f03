from __future__ import annotations

import sys
from pathlib import Path  # noqa: TC003
from typing import Annotated

import typer

from rowcsv.cli.commands._shared import read_query, resolve_settings
from rowcsv.core.client import PgClient
from rowcsv.core.converter import CRLF, RowConverter
from rowcsv.core.exceptions import OutputError
from rowcsv.core.logging import bind_context, get_logger


def _write_blob(blob: str | None, output: Path | None) -> None:
    """Write the CRLF blob: stdout gets a trailing CRLF, a file gets the blob exactly."""
    if output is None:
        if blob is not None:
            sys.stdout.write(blob + CRLF)
        return
    try:
        with output.open("w", encoding="utf-8", newline="") as f:
            if blob is not None:
                f.write(blob)
    except OSError as e:
        raise OutputError(f"Cannot write output file {output}: {e}") from e


def export_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to execute"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Execute inline SQL query"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write CSV to this file instead of stdout"),
    ] = None,
    separator: Annotated[
        str | None,
        typer.Option("--separator", "-s", help="Field separator (one character)"),
    ] = None,
    number_format: Annotated[
        str | None,
        typer.Option("--number-format", help="Number picture, e.g. FM999,990.00"),
    ] = None,
    date_format: Annotated[
        str | None,
        typer.Option("--date-format", help="Date picture, e.g. YYYY-MM-DD"),
    ] = None,
    quote_all: Annotated[
        bool | None,
        typer.Option("--quote-all/--no-quote-all", help="Quote every text field"),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-b", help="Rows fetched per round trip"),
    ] = None,
    header: Annotated[
        bool | None,
        typer.Option("--header/--no-header", help="Emit a header row before the data"),
    ] = None,
    crlf: Annotated[
        bool,
        typer.Option("--crlf", help="Emit one CRLF-separated blob instead of streaming lines"),
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Query timeout in seconds"),
    ] = None,
) -> None:
    """Export a SQL query result as CSV from file, inline (-e), or stdin."""
    sql = read_query(ctx, execute, file)
    settings = resolve_settings(
        ctx,
        timeout=timeout,
        separator=separator,
        number_format=number_format,
        date_format=date_format,
        quote_all_strings=quote_all,
        batch_size=batch_size,
        include_header=header,
    )
    options = settings.csv
    bind_context(output=str(output) if output else "stdout", batch_size=options.batch_size)

    with (
        PgClient(settings) as client,
        client.open_cursor(sql, batch_size=options.batch_size) as cursor,
        RowConverter(cursor, options) as converter,
    ):
        if crlf:
            _write_blob(converter.collect_all(settings.include_header), output)
        else:
            converter.write_all(output or sys.stdout, settings.include_header)

    get_logger().debug("export complete", row_count=converter.row_count)
