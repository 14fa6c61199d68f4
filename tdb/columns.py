# columns.py
"""
Typed column values and their display strings.

A NULL cell renders as the zero value of its column kind ("0", "false",
"1970-01-01", the nil GUID, ...), never as an empty marker. String and binary
cells render as "" and "[]".

A NULL cell takes the kind of the other cells in its column. When the whole
column is NULL the kind comes from the driver's type code, which reports
DATETIMEOFFSET and XML columns as strings, so those render as "".

Floats print positionally ("100000000000000000000.0", "0.00001"), never in
exponent notation.
"""

import math
import struct
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional


class ColumnKind(str, Enum):
    U8 = "u8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"
    BIT = "bit"
    STRING = "string"
    BINARY = "binary"
    GUID = "guid"
    NUMERIC = "numeric"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    SMALLDATETIME = "smalldatetime"
    DATETIME2 = "datetime2"
    DATETIMEOFFSET = "datetimeoffset"
    XML = "xml"


class XmlData(str):
    """Text of an XML column, kept distinct from plain strings."""


@dataclass(frozen=True)
class ColumnValue:
    kind: ColumnKind
    value: Any = None

    @property
    def is_null(self) -> bool:
        return self.value is None

    def display(self) -> str:
        return to_display(self)


NIL_GUID = uuid.UUID(int=0)
EPOCH_DATE = date(1970, 1, 1)
MIDNIGHT = time(0, 0, 0)
EPOCH = datetime(1970, 1, 1)
EPOCH_UTC = datetime(1970, 1, 1, tzinfo=timezone.utc)
XML_PLACEHOLDER = "<xml>"

# Column size reported by the driver for each SQL Server integer type.
_INT_KINDS = {3: ColumnKind.U8, 5: ColumnKind.I16, 10: ColumnKind.I32, 19: ColumnKind.I64}
_REAL_PRECISION = 24
_SMALLDATETIME_PRECISION = 16
_DATETIME_PRECISION = 23


def _int_kind(precision: Optional[int]) -> ColumnKind:
    return _INT_KINDS.get(precision, ColumnKind.I64)


def _float_kind(precision: Optional[int]) -> ColumnKind:
    return ColumnKind.F32 if precision == _REAL_PRECISION else ColumnKind.F64


def _datetime_kind(precision: Optional[int]) -> ColumnKind:
    if precision == _SMALLDATETIME_PRECISION:
        return ColumnKind.SMALLDATETIME
    if precision == _DATETIME_PRECISION:
        return ColumnKind.DATETIME
    return ColumnKind.DATETIME2


def kind_of(value: Any, type_code: Optional[type] = None, precision: Optional[int] = None) -> ColumnKind:
    """
    Classify a cell. Non-null values are classified by their Python type;
    NULLs fall back to the cursor's type code and precision.
    """
    probe = type(value) if value is not None else type_code

    # Order matters: XmlData is a str, bool is an int, datetime is a date.
    if probe is None:
        return ColumnKind.STRING
    if issubclass(probe, XmlData):
        return ColumnKind.XML
    if issubclass(probe, bool):
        return ColumnKind.BIT
    if issubclass(probe, int):
        return _int_kind(precision)
    if issubclass(probe, float):
        return _float_kind(precision)
    if issubclass(probe, Decimal):
        return ColumnKind.NUMERIC
    if issubclass(probe, (bytes, bytearray, memoryview)):
        return ColumnKind.BINARY
    if issubclass(probe, uuid.UUID):
        return ColumnKind.GUID
    if issubclass(probe, datetime):
        if value is not None and value.tzinfo is not None:
            return ColumnKind.DATETIMEOFFSET
        return _datetime_kind(precision)
    if issubclass(probe, date):
        return ColumnKind.DATE
    if issubclass(probe, time):
        return ColumnKind.TIME
    return ColumnKind.STRING


def _positional(x: float) -> str:
    """Shortest round-trip digits of `x` without an exponent."""
    if not math.isfinite(x):
        return str(x)
    text = format(Decimal(repr(x)), "f")
    return text if "." in text else text + ".0"


def _shortest_f32(x: float) -> str:
    """Shortest decimal text that round-trips through a 32-bit float."""
    packed = struct.pack("<f", x)
    for digits in range(1, 10):
        candidate = float(f"{x:.{digits}g}")
        if struct.pack("<f", candidate) == packed:
            return _positional(candidate)
    return _positional(x)


def _numeric_parts(d: Decimal):
    sign, digits, exponent = d.as_tuple()
    value = int("".join(map(str, digits)) or "0")
    if exponent > 0:
        value *= 10 ** exponent
    scale = -exponent if exponent < 0 else 0
    return (-value if sign else value), scale


def _render_int(v: Any) -> str:
    return str(int(v) if v is not None else 0)


def _render_f32(v: Any) -> str:
    return _shortest_f32(float(v)) if v is not None else "0.0"


def _render_f64(v: Any) -> str:
    return _positional(float(v) if v is not None else 0.0)


def _render_bit(v: Any) -> str:
    return "true" if v else "false"


def _render_string(v: Any) -> str:
    return "" if v is None else str(v)


def _render_binary(v: Any) -> str:
    return str(list(bytes(v if v is not None else b"")))


def _render_guid(v: Any) -> str:
    if v is None:
        return str(NIL_GUID)
    if not isinstance(v, uuid.UUID):
        v = uuid.UUID(str(v))
    return str(v)


def _render_numeric(v: Any) -> str:
    value, scale = _numeric_parts(Decimal(v)) if v is not None else (0, 0)
    return f"Numeric(value={value}, scale={scale})"


def _render_date(v: Any) -> str:
    return (v if v is not None else EPOCH_DATE).isoformat()


def _render_time(v: Any) -> str:
    return (v if v is not None else MIDNIGHT).isoformat()


def _render_datetime(v: Any) -> str:
    return (v if v is not None else EPOCH).isoformat(sep=" ")


def _render_datetimeoffset(v: Any) -> str:
    return (v if v is not None else EPOCH_UTC).isoformat(sep=" ")


def _render_xml(v: Any) -> str:
    # XML content is not rendered.
    return XML_PLACEHOLDER


RENDERERS: Dict[ColumnKind, Callable[[Any], str]] = {
    ColumnKind.U8: _render_int,
    ColumnKind.I16: _render_int,
    ColumnKind.I32: _render_int,
    ColumnKind.I64: _render_int,
    ColumnKind.F32: _render_f32,
    ColumnKind.F64: _render_f64,
    ColumnKind.BIT: _render_bit,
    ColumnKind.STRING: _render_string,
    ColumnKind.BINARY: _render_binary,
    ColumnKind.GUID: _render_guid,
    ColumnKind.NUMERIC: _render_numeric,
    ColumnKind.DATE: _render_date,
    ColumnKind.TIME: _render_time,
    ColumnKind.DATETIME: _render_datetime,
    ColumnKind.SMALLDATETIME: _render_datetime,
    ColumnKind.DATETIME2: _render_datetime,
    ColumnKind.DATETIMEOFFSET: _render_datetimeoffset,
    ColumnKind.XML: _render_xml,
}

_unhandled = set(ColumnKind) - set(RENDERERS)
if _unhandled:
    raise RuntimeError(f"No display rule for column kinds: {sorted(k.value for k in _unhandled)}")


def to_display(cell: ColumnValue) -> str:
    return RENDERERS[cell.kind](cell.value)
