"""
Row serialization to JSON Lines.

Each fetched value is classified into a closed set of kinds before it is
converted, so every driver type either maps to a JSON value or is rejected.
"""

import base64
import math
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Sequence, Tuple

import simplejson


class ValueKind(Enum):
    """Kinds of column values the serializer understands."""

    NULL = "null"
    BOOL = "bool"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    TEXT = "text"
    BYTES = "bytes"
    TIMESTAMP = "timestamp"


def classify_value(value: Any) -> ValueKind:
    """
    Classify a driver value.

    Raises:
        TypeError: If the value has no JSON representation
    """
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int, so it must be tested first
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return ValueKind.INTEGER
        return ValueKind.DECIMAL
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, (str, uuid.UUID, timedelta)):
        return ValueKind.TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BYTES
    if isinstance(value, (datetime, date, time)):
        return ValueKind.TIMESTAMP
    raise TypeError(f"Unsupported value type: {type(value).__name__}")


def format_duration(value: timedelta) -> str:
    """Render a duration as ``[-]HH:MM:SS[.ffffff]`` with unbounded hours."""
    micros = value // timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    seconds, micros = divmod(abs(micros), 1_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if micros:
        text += f".{micros:06d}"
    return text


def to_json_value(value: Any) -> Any:
    """Convert a driver value to its JSON-compatible Python form."""
    kind = classify_value(value)

    if kind is ValueKind.NULL:
        return None
    if kind is ValueKind.BOOL:
        return value
    if kind is ValueKind.INTEGER:
        return int(value)
    if kind is ValueKind.DECIMAL:
        # Kept as Decimal, the encoder writes its exact digits
        return value if value.is_finite() else None
    if kind is ValueKind.FLOAT:
        number = float(value)
        return number if math.isfinite(number) else None
    if kind is ValueKind.TEXT:
        if isinstance(value, timedelta):
            return format_duration(value)
        return value if isinstance(value, str) else str(value)
    if kind is ValueKind.BYTES:
        return base64.b64encode(bytes(value)).decode("ascii")
    if kind is ValueKind.TIMESTAMP:
        return value.isoformat()
    raise AssertionError(f"Unhandled value kind: {kind}")


def row_to_dict(columns: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Build the JSON object for one row, rejecting duplicate column names."""
    record: Dict[str, Any] = {}
    for name, value in columns:
        if name in record:
            raise ValueError(f"Duplicate column name in row: {name}")
        try:
            record[name] = to_json_value(value)
        except TypeError as exc:
            raise TypeError(f"Column '{name}': {exc}") from exc
    return record


def serialize_row(columns: Iterable[Tuple[str, Any]]) -> str:
    """Serialize one row to a single JSON line without the trailing newline."""
    # Control characters are escaped, so the result never spans lines
    return simplejson.dumps(
        row_to_dict(columns),
        ensure_ascii=False,
        separators=(",", ":"),
        use_decimal=True,
    )


def serialize_values(column_names: Sequence[str], values: Sequence[Any]) -> str:
    """Serialize a positional DB-API row given the cursor's column names."""
    if len(column_names) != len(values):
        raise ValueError(
            f"Row has {len(values)} values but cursor reported {len(column_names)} columns"
        )
    return serialize_row(zip(column_names, values))
