"""Bounded undo/redo history of applied fixes.

One UndoManager belongs to one open repository; construct a new one (or
call clear_all) on repository switch. The manager only moves entries
between its stacks. Rewriting files from an entry's contents is the
caller's job.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass

from xplat.config.constants import UNDO_MAX_HISTORY
from xplat.refactor.models import UndoEntry


@dataclass(frozen=True)
class UndoSummary:
    undo_count: int
    redo_count: int
    last_undo: str | None
    last_redo: str | None


class UndoManager:
    """Two bounded stacks. The oldest entry falls off when a stack is full."""

    def __init__(self, max_history: int = UNDO_MAX_HISTORY) -> None:
        if max_history < 1:
            raise ValueError(f"max_history must be positive: {max_history}")
        self._max_history = max_history
        self._undo: deque[UndoEntry] = deque(maxlen=max_history)
        self._redo: deque[UndoEntry] = deque(maxlen=max_history)
        self._lock = threading.Lock()

    @property
    def max_history(self) -> int:
        return self._max_history

    def record_fix(
        self,
        file_path: str,
        old_content: str | None,
        new_content: str | None,
        description: str,
    ) -> UndoEntry:
        """Push a new entry. Any redo chain is discarded."""
        entry = UndoEntry(file_path, old_content, new_content, description)
        with self._lock:
            self._undo.append(entry)
            self._redo.clear()
        return entry

    def pop_undo(self) -> UndoEntry | None:
        with self._lock:
            if not self._undo:
                return None
            entry = self._undo.pop()
            self._redo.append(entry)
            return entry

    def pop_redo(self) -> UndoEntry | None:
        with self._lock:
            if not self._redo:
                return None
            entry = self._redo.pop()
            self._undo.append(entry)
            return entry

    def peek_undo(self) -> UndoEntry | None:
        with self._lock:
            return self._undo[-1] if self._undo else None

    def peek_redo(self) -> UndoEntry | None:
        with self._lock:
            return self._redo[-1] if self._redo else None

    def can_undo(self) -> bool:
        with self._lock:
            return bool(self._undo)

    def can_redo(self) -> bool:
        with self._lock:
            return bool(self._redo)

    def history(self, limit: int | None = None) -> list[UndoEntry]:
        """Undo entries, most recent first."""
        with self._lock:
            entries = list(reversed(self._undo))
        return entries if limit is None else entries[:limit]

    def clear_fix(self, entry_id: str) -> bool:
        """Forget one entry from either stack. Returns whether it was found."""
        with self._lock:
            for stack in (self._undo, self._redo):
                for entry in stack:
                    if entry.id == entry_id:
                        stack.remove(entry)
                        return True
        return False

    def clear_all(self) -> None:
        with self._lock:
            self._undo.clear()
            self._redo.clear()

    def summary(self) -> UndoSummary:
        with self._lock:
            return UndoSummary(
                undo_count=len(self._undo),
                redo_count=len(self._redo),
                last_undo=self._undo[-1].description if self._undo else None,
                last_redo=self._redo[-1].description if self._redo else None,
            )
