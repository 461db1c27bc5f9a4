"""
Schema inference for untyped tables and decoded record sets.

Each column gets a type, nullability, numeric range, distinct count and a
short list of sample values. Inference is a pure function of its input.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Iterable

import pandas as pd

from tessera.models import TYPE_PRECEDENCE, ColumnSchema, DataType, Schema, Table
from tessera.values import INT64_MAX, INT64_MIN, ValueKind, kind_of, normalize_datetime

SAMPLE_LIMIT = 5

INT_RE = re.compile(r"[+-]?\d+")
FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
THOUSANDS_RE = re.compile(r"[+-]?\d{1,3}(?:,\d{3})+(?:\.\d+)?")
COMMA_DECIMAL_RE = re.compile(r"[+-]?\d+,\d+")
BOOL_LITERALS = {"true": True, "false": False}

# Month-first before day-first for ambiguous numeric dates (invariant culture).
DATE_FORMAT_PATTERNS = [
    ("%Y-%m-%d", re.compile(r"^\d{4}-\d{2}-\d{2}$"), "YYYY-MM-DD"),
    ("%Y/%m/%d", re.compile(r"^\d{4}/\d{2}/\d{2}$"), "YYYY/MM/DD"),
    ("%m/%d/%Y", re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"), "MM/DD/YYYY"),
    ("%d/%m/%Y", re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"), "DD/MM/YYYY"),
    ("%m/%d/%Y %H:%M:%S", re.compile(r"^\d{1,2}/\d{1,2}/\d{4} \d{1,2}:\d{2}:\d{2}$"), "MM/DD/YYYY HH:MM:SS"),
    ("%m/%d/%Y %H:%M", re.compile(r"^\d{1,2}/\d{1,2}/\d{4} \d{1,2}:\d{2}$"), "MM/DD/YYYY HH:MM"),
    ("%m-%d-%Y", re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"), "MM-DD-YYYY"),
    ("%d-%m-%Y", re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"), "DD-MM-YYYY"),
    ("%d.%m.%Y", re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$"), "DD.MM.YYYY"),
    ("%B %d %Y", re.compile(r"^[A-Za-z]+\s+\d{1,2}\s+\d{4}$"), "Month D YYYY"),
    ("%b %d %Y", re.compile(r"^[A-Za-z]{3}\s+\d{1,2}\s+\d{4}$"), "Mon D YYYY"),
    ("%d %B %Y", re.compile(r"^\d{1,2}\s+[A-Za-z]+\s+\d{4}$"), "D Month YYYY"),
    ("%d %b %Y", re.compile(r"^\d{1,2}\s+[A-Za-z]{3}\s+\d{4}$"), "D Mon YYYY"),
    ("%B %d, %Y", re.compile(r"^[A-Za-z]+\s+\d{1,2},\s+\d{4}$"), "Month D, YYYY"),
    ("%b %d, %Y", re.compile(r"^[A-Za-z]{3}\s+\d{1,2},\s+\d{4}$"), "Mon D, YYYY"),
]


# ══════════════════════════════════════════════════════════════════════════════
# PARSE RULES
# ══════════════════════════════════════════════════════════════════════════════

def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def parse_int(value: str | None) -> int | None:
    if is_blank(value):
        return None
    text = value.strip()
    if not INT_RE.fullmatch(text):
        return None
    try:
        number = int(text)
    except ValueError:
        # Past the interpreter's integer string conversion limit.
        return None
    if not INT64_MIN <= number <= INT64_MAX:
        return None
    return number


def parse_float(value: str | None) -> float | None:
    """
    General numeric parse.

    Accepts plain decimals and exponents, comma-grouped thousands
    (``1,234.5``) and a single decimal comma (``88,9``). A single comma
    followed by exactly three digits is read as a thousands separator.
    """
    if is_blank(value):
        return None
    text = value.strip()

    if FLOAT_RE.fullmatch(text):
        candidate = text
    elif THOUSANDS_RE.fullmatch(text):
        candidate = text.replace(",", "")
    elif COMMA_DECIMAL_RE.fullmatch(text):
        candidate = text.replace(",", ".")
    else:
        return None

    try:
        number = float(candidate)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_bool(value: str | None) -> bool | None:
    if is_blank(value):
        return None
    return BOOL_LITERALS.get(value.strip().lower())


def parse_date(value: str | None) -> datetime | None:
    """
    Calendar date/time parse.

    ISO-8601 first, then the explicit format table, then pandas' parser.
    Text without any digit is never a date. Results are UTC; naive values
    are assumed to already be UTC.
    """
    if is_blank(value):
        return None
    text = value.strip()
    if not any(ch.isdigit() for ch in text):
        return None

    try:
        return normalize_datetime(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt, pattern, _label in DATE_FORMAT_PATTERNS:
        if not pattern.fullmatch(text):
            continue
        try:
            return normalize_datetime(datetime.strptime(text, fmt))
        except ValueError:
            continue

    if INT_RE.fullmatch(text) or FLOAT_RE.fullmatch(text):
        return None
    try:
        parsed = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return normalize_datetime(parsed.to_pydatetime())


PARSERS = {
    DataType.INT: parse_int,
    DataType.FLOAT: parse_float,
    DataType.BOOL: parse_bool,
    DataType.DATE: parse_date,
}


def parse_as(value: str | None, data_type: DataType) -> Any:
    """Parse ``value`` under ``data_type``'s rule; None when it does not parse."""
    if data_type == DataType.STRING:
        return None if value is None else value
    return PARSERS[data_type](value)


# ══════════════════════════════════════════════════════════════════════════════
# TABLE INFERENCE
# ══════════════════════════════════════════════════════════════════════════════

def infer_data_type(values: Iterable[str]) -> DataType:
    """First type in precedence order under which every value parses."""
    present = [value for value in values if not is_blank(value)]
    if not present:
        return DataType.STRING
    for candidate in TYPE_PRECEDENCE:
        if candidate == DataType.STRING:
            break
        parser = PARSERS[candidate]
        if all(parser(value) is not None for value in present):
            return candidate
    return DataType.STRING


def numeric_range(values: Iterable[str], data_type: DataType) -> tuple[Any, Any]:
    if not data_type.is_numeric:
        return None, None
    parser = PARSERS[data_type]
    numbers = [number for number in (parser(value) for value in values) if number is not None]
    if not numbers:
        return None, None
    return min(numbers), max(numbers)


def distinct_samples(values: Iterable[str], limit: int = SAMPLE_LIMIT) -> tuple[int, tuple[str, ...]]:
    seen: dict[str, None] = {}
    for value in values:
        if value not in seen:
            seen[value] = None
    ordered = list(seen)
    return len(ordered), tuple(ordered[:limit])


def infer_column(name: str, values: list[str | None]) -> ColumnSchema:
    present = [value for value in values if not is_blank(value)]
    is_nullable = len(present) < len(values)
    inferred_type = infer_data_type(present)
    min_value, max_value = numeric_range(present, inferred_type)
    distinct_count, samples = distinct_samples(present)
    return ColumnSchema(
        name=name,
        inferred_type=inferred_type,
        is_nullable=is_nullable,
        min_value=min_value,
        max_value=max_value,
        distinct_count=distinct_count,
        sample_values=samples,
    )


def infer_schema(table: Table) -> Schema:
    """One ColumnSchema per table column, in column order."""
    return Schema(
        tuple(infer_column(name, table.column_values(index)) for index, name in enumerate(table.columns))
    )


def refresh_statistics(table: Table, schema: Schema) -> Schema:
    """
    Recompute range, distinct count and samples after the table changed.

    Declared types and nullability are kept as they are.
    """
    columns = []
    for index, column in enumerate(schema):
        present = [value for value in table.column_values(index) if not is_blank(value)]
        min_value, max_value = numeric_range(present, column.inferred_type)
        distinct_count, samples = distinct_samples(present)
        columns.append(
            ColumnSchema(
                name=column.name,
                inferred_type=column.inferred_type,
                is_nullable=column.is_nullable,
                min_value=min_value,
                max_value=max_value,
                distinct_count=distinct_count,
                sample_values=samples,
            )
        )
    return Schema(tuple(columns))


# ══════════════════════════════════════════════════════════════════════════════
# RECORD INFERENCE
# ══════════════════════════════════════════════════════════════════════════════

def _type_from_kinds(kinds: set[ValueKind], texts: list[str]) -> DataType:
    if not kinds:
        return DataType.STRING
    if kinds == {ValueKind.INT}:
        return DataType.INT
    if kinds <= {ValueKind.INT, ValueKind.FLOAT}:
        return DataType.FLOAT
    if kinds == {ValueKind.BOOL}:
        return DataType.BOOL
    if kinds == {ValueKind.DATE}:
        return DataType.DATE
    if kinds <= {ValueKind.TEXT, ValueKind.DATE} and all(parse_date(text) is not None for text in texts):
        return DataType.DATE
    return DataType.STRING


def infer_schema_from_records(records: list[dict[str, Any]]) -> Schema:
    """
    Infer a schema from decoded JSON records.

    Keys are collected in first-seen order. A key is nullable when any record
    lacks it or holds null for it.
    """
    keys: dict[str, None] = {}
    for record in records:
        for key in record:
            keys.setdefault(key, None)

    columns = []
    for key in keys:
        kinds: set[ValueKind] = set()
        texts: list[str] = []
        raw_texts: list[str] = []
        nullable = False
        numbers: list[Any] = []
        for record in records:
            if key not in record or record[key] is None:
                nullable = True
                continue
            value = record[key]
            kind = kind_of(value)
            kinds.add(kind)
            if kind == ValueKind.TEXT:
                texts.append(value)
            if kind in (ValueKind.INT, ValueKind.FLOAT):
                numbers.append(value)
            raw_texts.append(value if isinstance(value, str) else str(value))

        inferred_type = _type_from_kinds(kinds, texts)
        min_value = max_value = None
        if inferred_type.is_numeric and numbers:
            min_value, max_value = min(numbers), max(numbers)
        distinct_count, samples = distinct_samples(raw_texts)
        columns.append(
            ColumnSchema(
                name=key,
                inferred_type=inferred_type,
                is_nullable=nullable,
                min_value=min_value,
                max_value=max_value,
                distinct_count=distinct_count,
                sample_values=samples,
            )
        )
    return Schema(tuple(columns))
