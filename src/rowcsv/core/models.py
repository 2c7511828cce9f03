"""Data models for rowcsv.

Pydantic models for column metadata and CSV conversion options, plus the
protocol a result set must satisfy to be converted.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

QUOTE = '"'
DEFAULT_DATE_FORMAT = "MM/DD/YYYY"
DEFAULT_BATCH_SIZE = 100


class TypeKind(StrEnum):
    """Formatting family a column belongs to."""

    TEXT = "text"
    NUMERIC = "numeric"
    TEMPORAL = "temporal"
    OTHER = "other"


class ColumnDescriptor(BaseModel):
    """Metadata for a single result column, captured once at open time."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(ge=1)
    name: str
    type_kind: TypeKind
    declared_width: int = Field(default=0, ge=0)
    type_name: str = "unknown"


class CsvOptions(BaseModel):
    """Separator, format pictures and fetch batching for a conversion."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    separator: str = ","
    number_format: str | None = None
    date_format: str = DEFAULT_DATE_FORMAT
    quote_all_strings: bool = False
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)

    @field_validator("separator")
    @classmethod
    def validate_separator(cls, v: str) -> str:
        if len(v) != 1:
            msg = f"Invalid separator: {v!r}. Must be exactly one character"
            raise ValueError(msg)
        if v in (QUOTE, "\r", "\n"):
            msg = f"Invalid separator: {v!r}. Cannot be the quote character or a line break"
            raise ValueError(msg)
        return v

    @field_validator("number_format")
    @classmethod
    def blank_number_format_is_default(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("date_format")
    @classmethod
    def validate_date_format(cls, v: str) -> str:
        if not v.strip():
            msg = "date_format cannot be empty"
            raise ValueError(msg)
        return v


@runtime_checkable
class RowSource(Protocol):
    """A forward-only result set: DB-API cursor metadata plus batched fetch.

    ``description`` follows DB-API 2.0: one sequence per column whose first
    items are name, type_code, display_size and internal_size.
    """

    description: Any

    def fetchmany(self, size: int) -> Sequence[Sequence[Any]]:
        """Return up to ``size`` rows; an empty sequence once drained."""
        ...
