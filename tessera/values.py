"""
Helpers for decoded cell and JSON values.

A decoded value is one of: None, bool, int, float, str, datetime, a list of
decoded values, or a dict mapping str to decoded values.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

DynamicValue = Union[None, bool, int, float, str, datetime, list, dict]
Record = dict[str, Any]

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
FLOAT_PRECISION = 6


class ValueKind(str, Enum):
    NULL = "Null"
    BOOL = "Bool"
    INT = "Int64"
    FLOAT = "Float64"
    TEXT = "Text"
    DATE = "Date"
    ARRAY = "Array"
    OBJECT = "Object"


def kind_of(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int, so it has to be checked first.
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, datetime):
        return ValueKind.DATE
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    raise TypeError(f"Unsupported value type: {type(value).__name__}")


def from_json(value: Any) -> Any:
    """Convert a json-module value into a decoded value, recursively."""
    if isinstance(value, dict):
        return {str(key): from_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [from_json(item) for item in value]
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, int):
        if INT64_MIN <= value <= INT64_MAX:
            return value
        return float(value)
    if isinstance(value, float):
        return value
    return str(value)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON literal: {name}")


def loads(text: str) -> Any:
    """
    Strict JSON decode: NaN/Infinity literals are rejected.

    Raises ValueError for malformed text and for nesting too deep to decode.
    """
    try:
        return from_json(json.loads(text, parse_constant=_reject_constant))
    except RecursionError as exc:
        raise ValueError("JSON nesting is too deep") from exc


def normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _comparable(value: Any) -> Any:
    kind = kind_of(value)
    if kind == ValueKind.FLOAT:
        if math.isnan(value):
            return (kind, "nan")
        return (kind, round(value, FLOAT_PRECISION))
    if kind == ValueKind.DATE:
        return (kind, normalize_datetime(value))
    if kind == ValueKind.ARRAY:
        return (kind, tuple(_comparable(item) for item in value))
    if kind == ValueKind.OBJECT:
        return (kind, tuple(sorted((key, _comparable(item)) for key, item in value.items())))
    return (kind, value)


def values_equal(left: Any, right: Any) -> bool:
    """Kind-aware equality: ``1``, ``1.0`` and ``True`` are all different values."""
    return _comparable(left) == _comparable(right)


def to_text(value: Any) -> str | None:
    """Render a decoded value back into cell text."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return normalize_datetime(value).isoformat().replace("+00:00", "Z")
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, (list, dict)):
        return json.dumps(to_jsonable(value), ensure_ascii=False, separators=(",", ":"))
    return str(value)


def to_jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return normalize_datetime(value).isoformat().replace("+00:00", "Z")
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value
