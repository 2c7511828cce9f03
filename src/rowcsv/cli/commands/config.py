"""Configuration inspection commands: ``config show`` and ``config profiles``."""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING, Any

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from rowcsv.cli.commands._shared import cli_state, load_app_config, resolve_settings
from rowcsv.core.config import DEFAULT_CONFIG_PATH

if TYPE_CHECKING:
    from rowcsv.core.config import ResolvedConfig

config_app = typer.Typer(help="Inspect rowcsv settings and profiles")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _console() -> Console:
    width = shutil.get_terminal_size((120, 24)).columns
    return Console(width=max(width, 80), markup=False, highlight=False, soft_wrap=True)


def _show(value: Any) -> str:
    if value is None:
        return "not set"
    return repr(value) if isinstance(value, str) else str(value)


def _settings_rows(settings: ResolvedConfig) -> list[tuple[str, str, str, str]]:
    """(section, name, shown value, source) for every resolved setting."""
    csv = settings.csv
    password = "***" if settings.password is not None else "not set"
    rows = [
        ("connection", "host", settings.host, "host"),
        ("connection", "port", str(settings.port), "port"),
        ("connection", "database", settings.dbname, "dbname"),
        ("connection", "user", settings.user or "not set", "user"),
        ("connection", "password", password, "password"),
        ("connection", "sslmode", settings.sslmode, "sslmode"),
        ("general", "timeout", f"{settings.default_timeout}s", "default_timeout"),
        ("csv", "separator", _show(csv.separator), "separator"),
        ("csv", "number_format", csv.number_format or "default picture", "number_format"),
        ("csv", "date_format", _show(csv.date_format), "date_format"),
        ("csv", "quote_all_strings", _show(csv.quote_all_strings), "quote_all_strings"),
        ("csv", "batch_size", _show(csv.batch_size), "batch_size"),
        ("csv", "include_header", _show(settings.include_header), "include_header"),
    ]
    return [
        (section, name, value, settings.sources.get(key, "default"))
        for section, name, value, key in rows
    ]


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved settings and where each one came from."""
    settings = resolve_settings(ctx)

    table = Table(box=box.SIMPLE_HEAD, show_edge=False)
    for heading in ("Section", "Setting", "Value", "Source"):
        table.add_column(heading, no_wrap=True)
    for row in _settings_rows(settings):
        table.add_row(*row)

    console = _console()
    console.print(table)
    console.print(f"Active Profile: {settings.active_profile or 'none'}")
    console.print(f"Config File: {cli_state(ctx).config_file or DEFAULT_CONFIG_PATH}")


@config_app.command("profiles")
def config_profiles(ctx: typer.Context) -> None:
    """List connection profiles; the active one is starred."""
    state = cli_state(ctx)
    app_config = load_app_config(ctx)
    active = state.profile or app_config.default_profile

    console = _console()
    if not app_config.profiles:
        console.print("No profiles configured.")
        console.print(f"Add profiles to: {state.config_file or DEFAULT_CONFIG_PATH}")
        return

    table = Table(box=box.SIMPLE_HEAD, show_edge=False)
    for heading in ("", "Profile", "Host", "Port", "Database", "User", "SSL"):
        table.add_column(heading, no_wrap=True)
    for name, profile in sorted(app_config.profiles.items()):
        table.add_row(
            "*" if name == active else "",
            name,
            profile.host,
            str(profile.port),
            profile.dbname,
            profile.user or "",
            profile.sslmode,
        )
    console.print(table)
