"""Column introspection for result sets.

Turns DB-API ``cursor.description`` entries into ordered ColumnDescriptor
lists, classifying each native column type into a TypeKind once so that
formatting never has to inspect types per value.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog

from rowcsv.core.exceptions import MetadataError, SourceError
from rowcsv.core.models import ColumnDescriptor, TypeKind

if TYPE_CHECKING:
    from rowcsv.core.models import RowSource

# Mapping from psycopg type OIDs to human-readable names.
# Covers the most common PostgreSQL types; unknown OIDs fall back to "unknown".
_TYPE_NAMES: dict[int, str] = {
    16: "bool",
    17: "bytea",
    18: "char",
    19: "name",
    20: "int8",
    21: "int2",
    23: "int4",
    25: "text",
    26: "oid",
    114: "json",
    142: "xml",
    700: "float4",
    701: "float8",
    790: "money",
    1042: "bpchar",
    1043: "varchar",
    1082: "date",
    1083: "time",
    1114: "timestamp",
    1184: "timestamptz",
    1186: "interval",
    1266: "timetz",
    1700: "numeric",
    2950: "uuid",
    3802: "jsonb",
}

_TEXT_TYPES = frozenset(
    {
        "text",
        "varchar",
        "bpchar",
        "char",
        "name",
        "character",
        "character varying",
        "string",
        "str",
        "varchar2",
        "nvarchar",
        "nvarchar2",
        "nchar",
        "clob",
        "nclob",
        "long",
        "citext",
    }
)

_NUMERIC_TYPES = frozenset(
    {
        "int2",
        "int4",
        "int8",
        "smallint",
        "integer",
        "int",
        "bigint",
        "numeric",
        "decimal",
        "number",
        "float",
        "float4",
        "float8",
        "real",
        "double",
        "double precision",
        "binary_float",
        "binary_double",
        "binary_integer",
    }
)

# money is left out: drivers hand it over as locale-formatted text such as
# "$1,000.00", so it is exported as-is under TypeKind.OTHER.

_TEMPORAL_TYPES = frozenset(
    {
        "date",
        "time",
        "timetz",
        "timestamp",
        "timestamptz",
        "datetime",
        "timestamp with time zone",
        "timestamp without time zone",
        "timestamp_tz",
        "timestamp_ltz",
    }
)


def _normalize_type_name(name: str) -> str:
    name = name.strip().lower()
    if name.startswith("db_type_"):
        name = name[len("db_type_") :]
    # Strip length/precision qualifiers such as varchar(20) or numeric(10,2).
    return name.split("(", 1)[0].strip()


def _kind_for_name(name: str) -> TypeKind:
    if name in _TEXT_TYPES:
        return TypeKind.TEXT
    if name in _NUMERIC_TYPES:
        return TypeKind.NUMERIC
    if name in _TEMPORAL_TYPES:
        return TypeKind.TEMPORAL
    return TypeKind.OTHER


def _kind_for_python_type(tp: type) -> TypeKind:
    if issubclass(tp, str):
        return TypeKind.TEXT
    if issubclass(tp, bool):
        return TypeKind.OTHER
    if issubclass(tp, (int, float, Decimal)):
        return TypeKind.NUMERIC
    if issubclass(tp, (datetime.date, datetime.time)):
        return TypeKind.TEMPORAL
    return TypeKind.OTHER


def classify(type_code: Any) -> tuple[TypeKind, str]:
    """Return the TypeKind and native type name for a DB-API type_code.

    Accepts PostgreSQL OIDs, type-name strings, driver type objects
    exposing ``name`` and plain Python types.  Anything unrecognized is
    classified as TypeKind.OTHER.
    """
    if type_code is None:
        return TypeKind.OTHER, "unknown"
    if isinstance(type_code, type):
        return _kind_for_python_type(type_code), type_code.__name__
    if isinstance(type_code, int) and not isinstance(type_code, bool):
        type_name = _TYPE_NAMES.get(type_code, "unknown")
        return _kind_for_name(type_name), type_name
    if isinstance(type_code, str):
        type_name = type_code
    else:
        type_name = getattr(type_code, "name", None) or str(type_code)
    return _kind_for_name(_normalize_type_name(type_name)), type_name


def _declared_width(entry: Any) -> int:
    for index in (2, 3):  # display_size, then internal_size
        try:
            size = entry[index]
        except (IndexError, TypeError):
            continue
        if isinstance(size, int) and size > 0:
            return size
    return 0


def describe(source: RowSource) -> list[ColumnDescriptor]:
    """Introspect ``source`` and return its columns in result order.

    Raises SourceError if the source is closed or is not a cursor, and
    MetadataError if no row-returning statement has been executed or the
    description cannot be read.
    """
    log = structlog.get_logger()

    if not callable(getattr(source, "fetchmany", None)):
        msg = f"Source {type(source).__name__} does not provide description and fetchmany()"
        raise SourceError(msg)
    if getattr(source, "closed", False):
        raise SourceError("Source result set is closed")

    try:
        description = source.description
    except AttributeError as e:
        msg = f"Source {type(source).__name__} does not provide description and fetchmany()"
        raise SourceError(msg) from e
    except Exception as e:
        raise MetadataError(f"Cannot read column metadata: {e}") from e
    if description is None:
        msg = "Source has no column metadata; execute a row-returning statement first"
        raise MetadataError(msg)

    columns: list[ColumnDescriptor] = []
    for position, entry in enumerate(description, start=1):
        try:
            name = entry[0]
            type_code = entry[1]
        except (IndexError, TypeError) as e:
            msg = f"Malformed description entry for column {position}: {entry!r}"
            raise MetadataError(msg) from e
        kind, type_name = classify(type_code)
        columns.append(
            ColumnDescriptor(
                position=position,
                name=str(name),
                type_kind=kind,
                declared_width=_declared_width(entry),
                type_name=type_name,
            )
        )

    log.debug(
        "described source",
        column_count=len(columns),
        kinds=[c.type_kind.value for c in columns],
    )
    return columns
