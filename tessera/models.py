"""Shared data model for tables, schemas, validation results and diffs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator


class DataType(str, Enum):
    STRING = "String"
    INT = "Int"
    FLOAT = "Float"
    BOOL = "Bool"
    DATE = "Date"

    @property
    def is_numeric(self) -> bool:
        return self in (DataType.INT, DataType.FLOAT)


# Inference precedence; STRING always succeeds so it comes last.
TYPE_PRECEDENCE = (DataType.INT, DataType.FLOAT, DataType.BOOL, DataType.DATE, DataType.STRING)


# ══════════════════════════════════════════════════════════════════════════════
# UNTYPED TABLE
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class Row:
    cells: list[str | None] = field(default_factory=list)

    def cell(self, index: int) -> str | None:
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return None


@dataclass
class Table:
    """
    Untyped table: column names plus rows of optional text cells.

    Rows may hold fewer cells than there are columns; consumers treat the
    missing trailing cells as absent.
    """

    columns: list[str] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)

    @classmethod
    def from_lists(cls, columns: list[str], rows: list[list[str | None]]) -> "Table":
        return cls(list(columns), [Row(list(cells)) for cells in rows])

    def column_values(self, index: int) -> list[str | None]:
        return [row.cell(index) for row in self.rows]


# ══════════════════════════════════════════════════════════════════════════════
# SCHEMA
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ColumnSchema:
    name: str
    inferred_type: DataType = DataType.STRING
    is_nullable: bool = True
    min_value: int | float | None = None
    max_value: int | float | None = None
    distinct_count: int = 0
    sample_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class Schema:
    """
    Ordered column schemas.

    Position-aligned with the source table when converting rows; matched by
    exact, case-sensitive name when validating JSON records.
    """

    columns: tuple[ColumnSchema, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[ColumnSchema]:
        return iter(self.columns)

    def __getitem__(self, index: int) -> ColumnSchema:
        return self.columns[index]

    def at(self, index: int) -> ColumnSchema | None:
        if 0 <= index < len(self.columns):
            return self.columns[index]
        return None

    def names(self) -> list[str]:
        return [column.name for column in self.columns]

    def get(self, name: str) -> ColumnSchema | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def replace(self, index: int, column: ColumnSchema) -> "Schema":
        columns = list(self.columns)
        columns[index] = column
        return Schema(tuple(columns))


# ══════════════════════════════════════════════════════════════════════════════
# VALIDATION
# ══════════════════════════════════════════════════════════════════════════════

class ValidationErrorType(str, Enum):
    SYNTAX = "Syntax"
    STRUCTURE = "Structure"
    MISSING_KEY = "MissingKey"
    UNKNOWN_KEY = "UnknownKey"
    TYPE_MISMATCH = "TypeMismatch"
    NULL_NOT_ALLOWED = "NullNotAllowed"


@dataclass(frozen=True)
class ValidationError:
    type: ValidationErrorType
    message: str
    row_index: int | None = None
    key: str | None = None
    line_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "row_index": self.row_index,
            "key": self.key,
            "line_number": self.line_number,
        }


@dataclass(frozen=True)
class ValidationResult:
    errors: tuple[ValidationError, ...] = ()
    model: list[dict[str, Any]] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "errors", tuple(self.errors))
        if self.errors and self.model is not None:
            raise ValueError("A validation result with errors cannot carry a model")
        if not self.errors and self.model is None:
            raise ValueError("A valid validation result must carry a model")

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def failure(
        cls,
        message: str,
        error_type: ValidationErrorType = ValidationErrorType.SYNTAX,
        line_number: int | None = None,
    ) -> "ValidationResult":
        return cls((ValidationError(error_type, message, line_number=line_number),), None)

    def errors_of(self, error_type: ValidationErrorType) -> list[ValidationError]:
        return [error for error in self.errors if error.type == error_type]


# ══════════════════════════════════════════════════════════════════════════════
# DIFF
# ══════════════════════════════════════════════════════════════════════════════

class KeyDifferenceType(str, Enum):
    MISSING = "Missing"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class KeyDifference:
    row_index: int | None
    key: str
    type: KeyDifferenceType


@dataclass(frozen=True)
class DiffResult:
    added_rows: tuple[int, ...] = ()
    removed_rows: tuple[int, ...] = ()
    modified_rows: tuple[int, ...] = ()
    key_mismatches: tuple[KeyDifference, ...] = ()

    @classmethod
    def empty(cls) -> "DiffResult":
        return cls()

    @property
    def has_changes(self) -> bool:
        return bool(self.added_rows or self.removed_rows or self.modified_rows or self.key_mismatches)

    def to_dict(self) -> dict[str, Any]:
        return {
            "added_rows": list(self.added_rows),
            "removed_rows": list(self.removed_rows),
            "modified_rows": list(self.modified_rows),
            "key_mismatches": [
                {"row_index": item.row_index, "key": item.key, "type": item.type.value}
                for item in self.key_mismatches
            ],
            "has_changes": self.has_changes,
        }


# ══════════════════════════════════════════════════════════════════════════════
# EDITS
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CellChange:
    row: int
    col: int
    old_value: str | None
    new_value: str | None
