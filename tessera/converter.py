"""
Table → structured record conversion.

Cells are coerced by their column's declared type. Cells that hold JSON
object/array literals (including several objects pasted without a wrapping
array) decode into nested values instead.
"""

from __future__ import annotations

from typing import Any

from tessera.inference import is_blank, parse_as
from tessera.models import DataType, Row, Schema, Table
from tessera.values import loads, to_text

OBJECT_SEPARATOR = "},{"

NOT_STRUCTURED = object()


# ══════════════════════════════════════════════════════════════════════════════
# EMBEDDED JSON
# ══════════════════════════════════════════════════════════════════════════════

def _try_loads(text: str) -> Any:
    try:
        return loads(text)
    except ValueError:
        return NOT_STRUCTURED


def _split_objects(text: str) -> list[Any]:
    """Split ``{..},{..}`` on the boundary and decode each repaired fragment."""
    fragments = text.split(OBJECT_SEPARATOR)
    decoded: list[Any] = []
    last = len(fragments) - 1
    for index, fragment in enumerate(fragments):
        if index > 0:
            fragment = "{" + fragment
        if index < last:
            fragment = fragment + "}"
        value = _try_loads(fragment)
        if value is not NOT_STRUCTURED:
            decoded.append(value)
    return decoded


def decode_embedded(text: str) -> Any:
    """
    Decode a JSON object/array literal stored inside a cell.

    Returns NOT_STRUCTURED when the text is not a structured literal or no
    repair attempt decodes.
    """
    trimmed = text.strip()

    if trimmed.startswith("["):
        value = _try_loads(trimmed)
        if isinstance(value, list):
            return value
        return NOT_STRUCTURED

    if not trimmed.startswith("{"):
        return NOT_STRUCTURED

    value = _try_loads(trimmed)
    if isinstance(value, dict):
        return value

    if trimmed.count("{") > 1 or OBJECT_SEPARATOR in trimmed:
        value = _try_loads("[" + trimmed + "]")
        if isinstance(value, list):
            return value
        fragments = _split_objects(trimmed)
        if fragments:
            return fragments

    return NOT_STRUCTURED


# ══════════════════════════════════════════════════════════════════════════════
# COERCION
# ══════════════════════════════════════════════════════════════════════════════

def coerce(raw: str | None, data_type: DataType) -> Any:
    """
    Coerce one raw cell under its declared type.

    Never raises: a value that does not parse stays as its raw text.
    """
    if is_blank(raw):
        return None

    structured = decode_embedded(raw)
    if structured is not NOT_STRUCTURED:
        return structured

    if data_type == DataType.STRING:
        return raw
    parsed = parse_as(raw, data_type)
    if parsed is None:
        return raw
    return parsed


def _column_type(schema: Schema, index: int) -> DataType:
    column = schema.at(index)
    return column.inferred_type if column is not None else DataType.STRING


def row_to_record(row: Row, columns: list[str], schema: Schema) -> dict[str, Any]:
    record: dict[str, Any] = {}
    bound = min(len(columns), len(row.cells))
    for index, name in enumerate(columns):
        if index < bound:
            record[name] = coerce(row.cells[index], _column_type(schema, index))
        else:
            record[name] = None
    return record


def to_records(table: Table, schema: Schema) -> list[dict[str, Any]]:
    """Convert every row of ``table`` into a record, keyed by column name."""
    return [row_to_record(row, table.columns, schema) for row in table.rows]


# ══════════════════════════════════════════════════════════════════════════════
# RECORDS → TABLE
# ══════════════════════════════════════════════════════════════════════════════

def table_from_records(records: list[dict[str, Any]], schema: Schema) -> Table:
    """Rebuild an untyped table in schema column order."""
    columns = schema.names()
    rows = [Row([to_text(record.get(name)) for name in columns]) for record in records]
    return Table(columns, rows)

