"""Per-column value formatting.

FieldFormatter turns one raw value into its text form according to the
column's TypeKind and the configured pictures.  It never quotes or escapes;
that is the encoder's job.
"""

from __future__ import annotations

import datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from rowcsv.core.exceptions import FormatError
from rowcsv.core.models import ColumnDescriptor, CsvOptions, TypeKind
from rowcsv.core.patterns import (
    canonical_number,
    compile_date_format,
    compile_number_format,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

_EPOCH_DATE = datetime.date(1900, 1, 1)


def _to_decimal(value: Any) -> Decimal | int:
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    if isinstance(value, (int, Decimal)):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"{value!r} is not a decimal number") from None
    raise TypeError(f"{type(value).__name__} is not a number")


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, datetime.time):
        return datetime.datetime.combine(_EPOCH_DATE, value)
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value.strip())
    raise TypeError(f"{type(value).__name__} is not a date or time")


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


class FieldFormatter:
    """Formats raw values for CSV output under a fixed set of CsvOptions."""

    def __init__(self, options: CsvOptions | None = None) -> None:
        self.options = options or CsvOptions()

    def validate(self, columns: Iterable[ColumnDescriptor]) -> None:
        """Compile the pictures needed by ``columns``.

        Raises FormatError naming the first column whose picture is invalid.
        """
        for column in columns:
            try:
                if column.type_kind is TypeKind.TEMPORAL:
                    compile_date_format(self.options.date_format)
                elif column.type_kind is TypeKind.NUMERIC and self.options.number_format:
                    compile_number_format(self.options.number_format)
            except ValueError as e:
                raise FormatError(f"invalid format: {e}", column) from e

    def format(self, value: Any, column: ColumnDescriptor) -> str:
        if value is None:
            return ""

        kind = column.type_kind
        try:
            if kind is TypeKind.NUMERIC:
                return self._format_number(value)
            if kind is TypeKind.TEMPORAL:
                return self._format_temporal(value)
        except (TypeError, ValueError) as e:
            raise FormatError(f"cannot format {kind.value} value: {e}", column) from e
        return _as_text(value)

    def _format_number(self, value: Any) -> str:
        number = _to_decimal(value)
        if not self.options.number_format:
            return canonical_number(number)
        picture = compile_number_format(self.options.number_format)
        return picture.render(Decimal(number))

    def _format_temporal(self, value: Any) -> str:
        picture = compile_date_format(self.options.date_format)
        return picture.render(_to_datetime(value))
