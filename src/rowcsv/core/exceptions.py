"""Exception hierarchy for rowcsv.

All exceptions carry an exit_code for CLI return value mapping.
Exit codes are defined in exit_codes.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rowcsv.core.exit_codes import ExitCode

if TYPE_CHECKING:
    from rowcsv.core.models import ColumnDescriptor


class RowCsvError(Exception):
    """Base exception for all rowcsv errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NetworkError(RowCsvError):
    """Connection failures, unreachable host."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Query timeout, connection timeout."""

    exit_code: int = ExitCode.TIMEOUT


class InputError(RowCsvError):
    """File not found, invalid parameters."""

    exit_code: int = ExitCode.INPUT_ERROR


class OutputError(RowCsvError):
    """Output file or stream could not be written."""

    exit_code: int = ExitCode.OUTPUT_ERROR


class ConfigError(RowCsvError):
    """Malformed config, missing profile, invalid CSV options."""

    exit_code: int = ExitCode.CONFIG_ERROR


class ConversionError(RowCsvError):
    """Base for failures while turning a result set into CSV rows."""

    exit_code: int = ExitCode.CONVERSION_ERROR


class SourceError(ConversionError):
    """Source result set is closed or does not behave like a cursor."""


class MetadataError(ConversionError):
    """Column metadata could not be read from the source."""


class FetchError(ConversionError):
    """A batch fetch from the source failed."""


class FormatError(ConversionError):
    """A value or format picture could not be applied to a column."""

    def __init__(self, message: str, column: ColumnDescriptor | None = None) -> None:
        self.column = column
        if column is not None:
            message = f"column {column.position} ({column.name!r}): {message}"
        super().__init__(message)
