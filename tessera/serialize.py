"""Writers for record sets, tables and schemas, and the schema file reader."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from tessera.models import ColumnSchema, DataType, Schema, Table
from tessera.values import loads, to_jsonable


def dumps_records(records: list[dict[str, Any]], indent: int | None = 2) -> str:
    return json.dumps(to_jsonable(records), indent=indent, ensure_ascii=False)


def format_json(text: str) -> str:
    """Pretty-print a JSON document; text that does not decode comes back unchanged."""
    try:
        document = loads(text)
    except ValueError:
        return text
    return json.dumps(to_jsonable(document), indent=2, ensure_ascii=False)


def escape_csv_value(value: str | None, delimiter: str) -> str:
    safe = value or ""
    requires_quotes = any(ch in safe for ch in (delimiter, "\n", "\r", '"'))
    safe = safe.replace('"', '""')
    return f'"{safe}"' if requires_quotes else safe


def table_to_csv(table: Table, delimiter: str = ",") -> str:
    lines = [delimiter.join(escape_csv_value(name, delimiter) for name in table.columns)]
    for row in table.rows:
        lines.append(delimiter.join(escape_csv_value(cell, delimiter) for cell in row.cells))
    return "\n".join(lines) + "\n"


# ══════════════════════════════════════════════════════════════════════════════
# SCHEMA FILES
# ══════════════════════════════════════════════════════════════════════════════

def column_to_dict(column: ColumnSchema) -> dict[str, Any]:
    return {
        "name": column.name,
        "type": column.inferred_type.value,
        "nullable": column.is_nullable,
        "min": column.min_value,
        "max": column.max_value,
        "distinct_count": column.distinct_count,
        "sample_values": list(column.sample_values),
    }


def schema_to_dict(schema: Schema) -> dict[str, Any]:
    return {"columns": [column_to_dict(column) for column in schema]}


def column_from_dict(payload: dict[str, Any]) -> ColumnSchema:
    if not isinstance(payload, dict) or "name" not in payload:
        raise ValueError("Each schema column must be an object with a 'name'.")
    type_name = payload.get("type", DataType.STRING.value)
    try:
        data_type = DataType(type_name)
    except ValueError:
        supported = ", ".join(item.value for item in DataType)
        raise ValueError(f"Unknown column type '{type_name}'. Supported: {supported}") from None
    return ColumnSchema(
        name=str(payload["name"]),
        inferred_type=data_type,
        is_nullable=bool(payload.get("nullable", True)),
        min_value=payload.get("min"),
        max_value=payload.get("max"),
        distinct_count=int(payload.get("distinct_count", 0)),
        sample_values=tuple(str(item) for item in payload.get("sample_values", [])),
    )


def schema_from_dict(payload: dict[str, Any]) -> Schema:
    if not isinstance(payload, dict) or not isinstance(payload.get("columns"), list):
        raise ValueError("Schema root must be an object with a 'columns' array.")
    return Schema(tuple(column_from_dict(item) for item in payload["columns"]))


def load_schema(path: "str | Path") -> Schema:
    """
    Read a JSON schema file.

    Raises:
        FileNotFoundError  if the file does not exist.
        ValueError         if the file is not a valid schema document.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not read schema: {exc}") from exc
    return schema_from_dict(payload)


def loads_records(text: str) -> list[dict[str, Any]]:
    """
    Decode a JSON array of objects without checking it against a schema.

    Raises:
        ValueError  if the text is not JSON or not an array of objects.
    """
    document = loads(text)
    if not isinstance(document, list) or not all(isinstance(entry, dict) for entry in document):
        raise ValueError("JSON must be an array of objects.")
    return document
