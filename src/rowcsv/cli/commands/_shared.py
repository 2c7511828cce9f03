"""Shared CLI plumbing for command modules.

The global options land in a CliState on ``ctx.obj``; commands turn it
into a ResolvedConfig and read their SQL through ``read_query``.
"""

from __future__ import annotations

import sys
from pathlib import Path  # noqa: TC003
from typing import Any

import typer
from pydantic import BaseModel

from rowcsv.core.config import AppConfig, ResolvedConfig, load_config, resolve_config
from rowcsv.core.exceptions import InputError
from rowcsv.core.exit_codes import ExitCode
from rowcsv.core.query_source import resolve_query_source


class CliState(BaseModel):
    """Global options given before the command name."""

    verbose: bool = False
    profile: str | None = None
    dsn: str | None = None
    config_file: Path | None = None
    # --host, --port, --database, --user, --password as given
    connection: dict[str, Any] = {}


def cli_state(ctx: typer.Context) -> CliState:
    state = ctx.find_object(CliState)
    return state if state is not None else CliState()


def load_app_config(ctx: typer.Context) -> AppConfig:
    return load_config(cli_state(ctx).config_file)


def resolve_settings(ctx: typer.Context, **command_options: Any) -> ResolvedConfig:
    """Resolve settings for this invocation; command options beat global ones."""
    state = cli_state(ctx)
    return resolve_config(
        load_config(state.config_file),
        profile_name=state.profile,
        dsn=state.dsn,
        **state.connection,
        **command_options,
    )


def read_query(ctx: typer.Context, execute: str | None, file: str | None) -> str:
    """Resolve the command's SQL, showing help when nothing was given."""
    try:
        interactive = sys.stdin.isatty()
    except (ValueError, AttributeError):
        interactive = False
    if execute is None and file is None and interactive:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        return resolve_query_source(inline=execute, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc
