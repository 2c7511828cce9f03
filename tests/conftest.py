"""Shared test fixtures for rowcsv."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from rowcsv.cli.main import app
from tests.fakes import FakeCursor, column


@pytest.fixture
def make_cursor():
    """Build a FakeCursor from (name, type_code) pairs and row tuples."""

    def build(columns, rows=(), **kwargs):
        description = [column(*c) if isinstance(c, tuple) else column(c) for c in columns]
        return FakeCursor(description, rows, **kwargs)

    return build


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
