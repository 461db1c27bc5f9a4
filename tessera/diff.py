"""Row-level diff between two record sets, correlated by position."""

from __future__ import annotations

from typing import Any

from tessera.models import DiffResult, KeyDifference, KeyDifferenceType, Schema
from tessera.values import values_equal

MISSING = object()


def key_mismatches(record: dict[str, Any], row_index: int, schema: Schema) -> list[KeyDifference]:
    """Schema columns absent from ``record`` and keys the schema does not know."""
    mismatches = [
        KeyDifference(row_index, column.name, KeyDifferenceType.MISSING)
        for column in schema
        if column.name not in record
    ]
    known = set(schema.names())
    mismatches.extend(
        KeyDifference(row_index, key, KeyDifferenceType.UNKNOWN) for key in record if key not in known
    )
    return mismatches


def row_changed(current: dict[str, Any], updated: dict[str, Any], schema: Schema) -> bool:
    for column in schema:
        before = current.get(column.name, MISSING)
        after = updated.get(column.name, MISSING)
        if before is MISSING or after is MISSING:
            if before is not after:
                return True
            continue
        if not values_equal(before, after):
            return True
    return False


def build_diff(current: list[dict[str, Any]], updated: list[dict[str, Any]], schema: Schema) -> DiffResult:
    """
    Compare ``updated`` against ``current`` row by row.

    Rows only in ``updated`` are added, rows only in ``current`` are removed,
    and shared positions are modified when any schema column differs.
    """
    shared = min(len(current), len(updated))

    modified = tuple(index for index in range(shared) if row_changed(current[index], updated[index], schema))
    added = tuple(range(len(current), len(updated)))
    removed = tuple(range(len(updated), len(current)))

    mismatches: list[KeyDifference] = []
    for index, record in enumerate(updated):
        mismatches.extend(key_mismatches(record, index, schema))

    return DiffResult(
        added_rows=added,
        removed_rows=removed,
        modified_rows=modified,
        key_mismatches=tuple(mismatches),
    )
