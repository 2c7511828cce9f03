"""rowcsv - convert database result sets into RFC 4180 CSV, one row at a time."""

from rowcsv.__about__ import __version__
from rowcsv.core.catalog import describe
from rowcsv.core.converter import ConverterState, RowConverter
from rowcsv.core.encoder import encode_field, encode_header, encode_row
from rowcsv.core.formatter import FieldFormatter
from rowcsv.core.models import ColumnDescriptor, CsvOptions, RowSource, TypeKind

__all__ = [
    "ColumnDescriptor",
    "ConverterState",
    "CsvOptions",
    "FieldFormatter",
    "RowConverter",
    "RowSource",
    "TypeKind",
    "__version__",
    "describe",
    "encode_field",
    "encode_header",
    "encode_row",
]
