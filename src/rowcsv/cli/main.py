"""rowcsv command line: global options, command registration, exit codes."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from rowcsv.__about__ import __version__
from rowcsv.cli.commands._shared import CliState
from rowcsv.cli.commands.config import config_app
from rowcsv.cli.commands.describe import describe_command
from rowcsv.cli.commands.export import export_command
from rowcsv.core.exceptions import RowCsvError
from rowcsv.core.exit_codes import ExitCode
from rowcsv.core.logging import setup_logging
from rowcsv.core.monitoring import setup_sentry

app = typer.Typer(
    help="rowcsv - stream PostgreSQL query results as RFC 4180 CSV",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")
app.command("export")(export_command)
app.command("describe")(describe_command)

_CONNECTION = "Connection"


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"rowcsv {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version", "-V", callback=_print_version, is_eager=True, help="Show version and exit"
        ),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Log debug events to stderr")] = False,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile", rich_help_panel=_CONNECTION),
    ] = None,
    host: Annotated[
        str | None, typer.Option("--host", "-H", help="Server host", rich_help_panel=_CONNECTION)
    ] = None,
    port: Annotated[
        int | None, typer.Option("--port", "-p", help="Server port", rich_help_panel=_CONNECTION)
    ] = None,
    database: Annotated[
        str | None,
        typer.Option("--database", "-d", help="Database name", rich_help_panel=_CONNECTION),
    ] = None,
    user: Annotated[
        str | None, typer.Option("--user", "-U", help="User name", rich_help_panel=_CONNECTION)
    ] = None,
    password: Annotated[
        str | None, typer.Option("--password", "-W", help="Password", rich_help_panel=_CONNECTION)
    ] = None,
    dsn: Annotated[
        str | None,
        typer.Option("--dsn", help="libpq connection string or URI", rich_help_panel=_CONNECTION),
    ] = None,
    config_file: Annotated[
        Path | None, typer.Option("--config", help="Config file (TOML)")
    ] = None,
) -> None:
    """rowcsv - stream PostgreSQL query results as RFC 4180 CSV."""
    setup_logging(verbose, command=ctx.invoked_subcommand, profile=profile)
    if setup_sentry():
        ctx.with_resource(
            sentry_sdk.start_transaction(op="cli", name=ctx.invoked_subcommand or "rowcsv")
        )
        ctx.call_on_close(lambda: sentry_sdk.flush(timeout=2))

    given = {"host": host, "port": port, "database": database, "user": user, "password": password}
    ctx.obj = CliState(
        verbose=verbose,
        profile=profile,
        dsn=dsn,
        config_file=config_file,
        connection={k: v for k, v in given.items() if v is not None},
    )


def _fail(error: BaseException, message: str, code: int) -> None:
    sentry_sdk.capture_exception(error)
    typer.echo(f"Error: {message}", err=True)
    raise SystemExit(code) from None


def run() -> None:
    """Console entry point: maps rowcsv errors to their exit codes."""
    try:
        app()
    except RowCsvError as e:
        _fail(e, e.message, e.exit_code)
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        _fail(e, str(e), ExitCode.GENERAL_ERROR)
