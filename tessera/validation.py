"""
Validation of JSON documents, decoded records, single cells and whole columns
against a Schema.

JSON validation never stops at the first problem: every row is checked and
all diagnostics are returned together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tessera.inference import is_blank, parse_as
from tessera.models import (
    ColumnSchema,
    DataType,
    Schema,
    Table,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
)
from tessera.values import ValueKind, kind_of, loads

COMPATIBLE_KINDS = {
    DataType.INT: {ValueKind.INT},
    DataType.FLOAT: {ValueKind.INT, ValueKind.FLOAT},
    DataType.BOOL: {ValueKind.BOOL},
    DataType.DATE: {ValueKind.TEXT, ValueKind.DATE},
    # String columns also carry JSON literals decoded out of CSV cells.
    DataType.STRING: {ValueKind.TEXT, ValueKind.ARRAY, ValueKind.OBJECT},
}


@dataclass(frozen=True)
class CellValidation:
    is_valid: bool
    message: str | None = None
    normalized_value: str | None = None

    @classmethod
    def success(cls, normalized: str | None) -> "CellValidation":
        return cls(True, None, normalized)

    @classmethod
    def error(cls, message: str) -> "CellValidation":
        return cls(False, message, None)


@dataclass
class ColumnReport:
    errors: list[str] = field(default_factory=list)
    normalized_values: list[str | None] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


# ══════════════════════════════════════════════════════════════════════════════
# JSON DOCUMENTS
# ══════════════════════════════════════════════════════════════════════════════

def is_compatible(value: Any, data_type: DataType) -> bool:
    return kind_of(value) in COMPATIBLE_KINDS[data_type]


def _describe(value: Any) -> str:
    return kind_of(value).value


def validate_record(record: dict[str, Any], row_index: int, schema: Schema) -> list[ValidationError]:
    errors: list[ValidationError] = []

    for column in schema:
        if column.name not in record:
            errors.append(
                ValidationError(
                    ValidationErrorType.MISSING_KEY,
                    f"Row {row_index}: missing key '{column.name}'.",
                    row_index=row_index,
                    key=column.name,
                )
            )

    known = set(schema.names())
    for key, value in record.items():
        if key not in known:
            errors.append(
                ValidationError(
                    ValidationErrorType.UNKNOWN_KEY,
                    f"Row {row_index}: unknown key '{key}'.",
                    row_index=row_index,
                    key=key,
                )
            )
            continue

        column = schema.get(key)
        if value is None:
            if not column.is_nullable:
                errors.append(
                    ValidationError(
                        ValidationErrorType.NULL_NOT_ALLOWED,
                        f"Row {row_index}: '{key}' cannot be null.",
                        row_index=row_index,
                        key=key,
                    )
                )
            continue

        if not is_compatible(value, column.inferred_type):
            errors.append(
                ValidationError(
                    ValidationErrorType.TYPE_MISMATCH,
                    f"Row {row_index}: '{key}' expects {column.inferred_type.value}, got {_describe(value)}.",
                    row_index=row_index,
                    key=key,
                )
            )

    return errors


def validate_records(records: list[dict[str, Any]], schema: Schema) -> ValidationResult:
    """Validate an already decoded record set."""
    errors: list[ValidationError] = []
    for row_index, record in enumerate(records):
        errors.extend(validate_record(record, row_index, schema))
    if errors:
        return ValidationResult(tuple(errors), None)
    return ValidationResult((), records)


def validate_json_text(text: str, schema: Schema) -> ValidationResult:
    """
    Validate a JSON document against ``schema``.

    The document must be an array of objects. The decoded records are
    returned as the result's model only when there are no errors.
    """
    if text is None or not text.strip():
        return ValidationResult.failure("JSON cannot be empty.")

    try:
        document = loads(text)
    except ValueError as exc:
        message = getattr(exc, "msg", None) or str(exc)
        return ValidationResult.failure(f"Invalid JSON: {message}", line_number=getattr(exc, "lineno", None))

    if not isinstance(document, list):
        return ValidationResult.failure("JSON must be an array of objects.", ValidationErrorType.STRUCTURE)

    for index, entry in enumerate(document):
        if not isinstance(entry, dict):
            return ValidationResult.failure(
                f"Entry at index {index} is not an object.", ValidationErrorType.STRUCTURE
            )

    return validate_records(document, schema)


# ══════════════════════════════════════════════════════════════════════════════
# CELLS AND COLUMNS
# ══════════════════════════════════════════════════════════════════════════════

def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return str(value)


EXPECTATIONS = {
    DataType.INT: "an integer",
    DataType.FLOAT: "a floating point number",
    DataType.BOOL: "a boolean value",
    DataType.DATE: "a date value",
}


def normalize_cell(column: ColumnSchema, raw: str | None) -> CellValidation:
    if is_blank(raw):
        if not column.is_nullable:
            return CellValidation.error(f"{column.name} cannot be empty.")
        return CellValidation.success(None)

    data_type = column.inferred_type
    if data_type == DataType.STRING:
        return CellValidation.success(raw)

    parsed = parse_as(raw, data_type)
    if parsed is None:
        return CellValidation.error(f"{column.name} expects {EXPECTATIONS[data_type]}.")

    if data_type.is_numeric:
        return CellValidation.success(format_number(parsed))
    if data_type == DataType.BOOL:
        return CellValidation.success("true" if parsed else "false")
    return CellValidation.success(parsed.strftime("%Y-%m-%d"))


def validate_cell(schema: Schema, column_index: int, raw: str | None) -> CellValidation:
    column = schema.at(column_index)
    if column is None:
        return CellValidation.error("Column index is out of range.")
    return normalize_cell(column, raw)


def validate_column(table: Table, column_index: int, column: ColumnSchema) -> ColumnReport:
    """
    Check every cell of one column against a (proposed) column schema.

    Numeric values outside the schema's min/max bounds are reported too.
    """
    report = ColumnReport()
    for row_index, raw in enumerate(table.column_values(column_index)):
        result = normalize_cell(column, raw)
        if not result.is_valid:
            report.errors.append(f"Row {row_index}: {result.message}")
            report.normalized_values.append(raw)
            continue

        if column.inferred_type.is_numeric and result.normalized_value is not None:
            number = parse_as(result.normalized_value, column.inferred_type)
            if column.min_value is not None and number < column.min_value:
                report.errors.append(f"Row {row_index}: {column.name} is below the minimum {column.min_value}.")
            elif column.max_value is not None and number > column.max_value:
                report.errors.append(f"Row {row_index}: {column.name} is above the maximum {column.max_value}.")

        report.normalized_values.append(result.normalized_value)
    return report
