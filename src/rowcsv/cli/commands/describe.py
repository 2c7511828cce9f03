"""Column catalog preview for a query."""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

from rowcsv.cli.commands._shared import read_query, resolve_settings
from rowcsv.core.catalog import describe
from rowcsv.core.client import PgClient

if TYPE_CHECKING:
    from rowcsv.core.models import ColumnDescriptor


def render_columns(columns: list[ColumnDescriptor]) -> Table:
    table = Table(show_edge=True, pad_edge=True)
    table.add_column("#", justify="right", no_wrap=True)
    table.add_column("name", no_wrap=True)
    table.add_column("type", no_wrap=True)
    table.add_column("kind", no_wrap=True)
    table.add_column("width", justify="right", no_wrap=True)
    for col in columns:
        table.add_row(
            str(col.position),
            col.name,
            col.type_name,
            col.type_kind.value,
            str(col.declared_width) if col.declared_width else "",
        )
    return table


def describe_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to describe"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Describe an inline SQL query"),
    ] = None,
) -> None:
    """Show the columns a query returns and how each will be formatted."""
    sql = read_query(ctx, execute, file)

    with (
        PgClient(resolve_settings(ctx)) as client,
        client.open_cursor(sql, batch_size=1) as cursor,
    ):
        columns = describe(cursor)

    term_width = shutil.get_terminal_size((120, 24)).columns
    console = Console(width=term_width)
    console.print(render_columns(columns))
