"""
One editable dataset: the untyped table, its schema, the structured records
derived from both, and the edit history of the session.

Every mutation keeps the three views in sync and notifies listeners.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Callable

from tessera.converter import table_from_records, to_records
from tessera.diff import build_diff
from tessera.history import EditHistory
from tessera.inference import infer_schema, refresh_statistics
from tessera.models import CellChange, ColumnSchema, DiffResult, Schema, Table, ValidationResult
from tessera.parser import load_file
from tessera.validation import CellValidation, ColumnReport, validate_cell, validate_column, validate_json_text


class DataDocument:
    def __init__(self, table: Table, schema: Schema | None = None, history: EditHistory | None = None) -> None:
        schema = schema if schema is not None else infer_schema(table)
        if len(schema) != len(table.columns):
            raise ValueError("Table columns do not match schema definition.")
        self.table = table
        self.schema = schema
        self.history = history or EditHistory()
        self.records: list[dict[str, Any]] = to_records(table, schema)
        self._listeners: list[Callable[["DataDocument"], None]] = []

    @classmethod
    def from_file(cls, path: "str | Path") -> "DataDocument":
        loaded = load_file(path)
        return cls(loaded["table"], loaded["schema"])

    def add_listener(self, callback: Callable[["DataDocument"], None]) -> None:
        self._listeners.append(callback)

    def _changed(self, *, refresh: bool = True) -> None:
        if refresh:
            self.schema = refresh_statistics(self.table, self.schema)
        self.records = to_records(self.table, self.schema)
        for callback in self._listeners:
            callback(self)

    # ── cell edits ────────────────────────────────────────────────────────────

    def _write_cell(
        self, row_index: int, column_index: int, raw: str | None, *, normalize: bool = True
    ) -> CellValidation:
        """
        Validate ``raw`` and store it in the grid.

        With ``normalize=False`` the text is stored exactly as given; history
        replays use this so an undo restores the cell's previous text.
        """
        if not 0 <= row_index < len(self.table.rows):
            return CellValidation.error("Row index is out of range.")
        result = validate_cell(self.schema, column_index, raw)
        if not result.is_valid:
            return result

        row = self.table.rows[row_index]
        if len(row.cells) < len(self.table.columns):
            row.cells.extend([None] * (len(self.table.columns) - len(row.cells)))
        row.cells[column_index] = result.normalized_value if normalize else raw
        return result

    def update_cell(self, row_index: int, column_index: int, raw: str | None) -> CellValidation:
        """Validate, normalize and write one cell, recording the edit for undo."""
        old_value = None
        if 0 <= row_index < len(self.table.rows):
            old_value = self.table.rows[row_index].cell(column_index)

        result = self._write_cell(row_index, column_index, raw)
        if not result.is_valid:
            return result

        if old_value != result.normalized_value:
            self.history.record(CellChange(row_index, column_index, old_value, result.normalized_value))
            self._changed()
        return result

    def undo(self) -> CellChange | None:
        """Revert the latest edit; the history is rolled back if it cannot be applied."""
        change = self.history.undo()
        if change is None:
            return None
        if not self._write_cell(change.row, change.col, change.old_value, normalize=False).is_valid:
            self.history.cancel_undo(change)
            return None
        self.history.commit()
        self._changed()
        return change

    def redo(self) -> CellChange | None:
        change = self.history.redo()
        if change is None:
            return None
        if not self._write_cell(change.row, change.col, change.new_value, normalize=False).is_valid:
            self.history.cancel_redo(change)
            return None
        self.history.commit()
        self._changed()
        return change

    # ── JSON edits ────────────────────────────────────────────────────────────

    def preview_json(self, text: str) -> tuple[ValidationResult, DiffResult]:
        """Validate ``text`` and diff it against the current records without applying it."""
        validation = validate_json_text(text, self.schema)
        if not validation.is_valid:
            return validation, DiffResult.empty()
        return validation, build_diff(self.records, validation.model, self.schema)

    def apply_json(self, text: str) -> tuple[ValidationResult, DiffResult]:
        """Replace the dataset with a valid JSON document; invalid documents change nothing."""
        validation, diff = self.preview_json(text)
        if not validation.is_valid:
            return validation, diff

        self.table = table_from_records(validation.model, self.schema)
        self.history.clear()
        self._changed()
        return validation, diff

    # ── schema edits ──────────────────────────────────────────────────────────

    def update_schema_column(self, column_index: int, column: ColumnSchema) -> ColumnReport:
        """Retype one column; applied only when every existing value fits the new schema."""
        if self.schema.at(column_index) is None:
            report = ColumnReport()
            report.errors.append("Column index is out of range.")
            return report

        report = validate_column(self.table, column_index, column)
        if not report.is_valid:
            return report

        for row, value in zip(self.table.rows, report.normalized_values):
            if column_index < len(row.cells):
                row.cells[column_index] = value
        self.schema = self.schema.replace(column_index, column)
        self.table.columns[column_index] = column.name
        self.history.clear()
        self._changed()
        return report

    def rename_column(self, column_index: int, new_name: str) -> None:
        current = self.schema.at(column_index)
        if current is None:
            raise IndexError("Column index is out of range.")
        self.schema = self.schema.replace(column_index, dataclasses.replace(current, name=new_name))
        self.table.columns[column_index] = new_name
        self._changed(refresh=False)
