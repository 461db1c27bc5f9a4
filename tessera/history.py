"""
Undo/redo history of committed cell edits.

``undo()`` and ``redo()`` are tentative moves: the change is moved to the
other stack immediately and handed to the caller, who applies it to the grid.
If applying fails the caller must hand it back through ``cancel_undo()`` /
``cancel_redo()``, which restores the state from before the move.

    Idle --undo()--> PendingUndo --commit()/next op--> Idle
                                 --cancel_undo()-----> Idle (stacks restored)

Redo is symmetric. One history belongs to one editing session; it is not
safe for concurrent use.
"""

from __future__ import annotations

from enum import Enum

from tessera.models import CellChange


class HistoryError(Exception):
    pass


class HistoryState(str, Enum):
    IDLE = "Idle"
    PENDING_UNDO = "PendingUndo"
    PENDING_REDO = "PendingRedo"


class EditHistory:
    def __init__(self) -> None:
        self._undo_stack: list[CellChange] = []
        self._redo_stack: list[CellChange] = []
        self._state = HistoryState.IDLE
        self._pending: CellChange | None = None

    @property
    def state(self) -> HistoryState:
        return self._state

    @property
    def pending(self) -> CellChange | None:
        return self._pending

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    def _settle(self) -> None:
        self._state = HistoryState.IDLE
        self._pending = None

    def commit(self) -> None:
        """Mark the pending undo/redo as applied."""
        self._settle()

    def record(self, change: CellChange) -> None:
        """Push a new edit. Any redo branch is discarded."""
        self._settle()
        self._undo_stack.append(change)
        self._redo_stack.clear()

    def undo(self) -> CellChange | None:
        self._settle()
        if not self._undo_stack:
            return None
        change = self._undo_stack.pop()
        self._redo_stack.append(change)
        self._state = HistoryState.PENDING_UNDO
        self._pending = change
        return change

    def redo(self) -> CellChange | None:
        self._settle()
        if not self._redo_stack:
            return None
        change = self._redo_stack.pop()
        self._undo_stack.append(change)
        self._state = HistoryState.PENDING_REDO
        self._pending = change
        return change

    def cancel_undo(self, change: CellChange) -> None:
        """Reverse an ``undo()`` whose change could not be applied."""
        if not self._redo_stack or self._redo_stack[-1] != change:
            raise HistoryError("cancel_undo() expects the change most recently returned by undo()")
        self._redo_stack.pop()
        self._undo_stack.append(change)
        self._settle()

    def cancel_redo(self, change: CellChange) -> None:
        """Reverse a ``redo()`` whose change could not be applied."""
        if not self._undo_stack or self._undo_stack[-1] != change:
            raise HistoryError("cancel_redo() expects the change most recently returned by redo()")
        self._undo_stack.pop()
        self._redo_stack.append(change)
        self._settle()

    def clear(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._settle()
