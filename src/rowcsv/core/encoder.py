"""RFC 4180 field quoting and row assembly.

A field is wrapped in double quotes when it contains the separator, a line
break or a double quote (or when quoting is forced); inside a quoted field
each double quote is doubled.  Separators and line breaks are never escaped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rowcsv.core.models import QUOTE, TypeKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rowcsv.core.models import ColumnDescriptor, CsvOptions

_DOUBLED_QUOTE = QUOTE * 2


def needs_quoting(field: str, separator: str) -> bool:
    return separator in field or "\r" in field or "\n" in field or QUOTE in field


def encode_field(field: str, separator: str, force: bool = False) -> str:
    if not (force or needs_quoting(field, separator)):
        return field
    return QUOTE + field.replace(QUOTE, _DOUBLED_QUOTE) + QUOTE


def encode_row(
    fields: Sequence[str],
    options: CsvOptions,
    kinds: Sequence[TypeKind] | None = None,
) -> str:
    """Encode formatted fields into one CSV line without a line terminator.

    With ``kinds`` given, ``quote_all_strings`` only forces quoting on
    TypeKind.TEXT fields; without it every field counts as a string.
    Empty fields are never force-quoted, so nulls stay empty.
    """
    sep = options.separator
    if not options.quote_all_strings:
        return sep.join(encode_field(f, sep) for f in fields)
    if kinds is None:
        return sep.join(encode_field(f, sep, force=f != "") for f in fields)
    return sep.join(
        encode_field(f, sep, force=kind is TypeKind.TEXT and f != "")
        for f, kind in zip(fields, kinds, strict=True)
    )


def encode_header(columns: Sequence[ColumnDescriptor], options: CsvOptions) -> str:
    return encode_row([c.name for c in columns], options)
