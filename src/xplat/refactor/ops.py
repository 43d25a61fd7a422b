"""Suggestion registry and the apply/dismiss/undo lifecycle.

Suggestions move pending -> applied or pending -> dismissed, never back.
Applying computes every new file content in memory before the first
write, so a diff that does not apply leaves the disk untouched.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from xplat.core.errors import DiffError, RefactorError, XplatError
from xplat.core.logging import get_logger
from xplat.diagnostics.events import ResolutionMethod
from xplat.diff.engine import parse_diff, patch_text
from xplat.refactor.models import (
    ApplyResult,
    RefactorSuggestion,
    SuggestionState,
    UndoEntry,
)
from xplat.refactor.undo import UndoManager

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from xplat.diagnostics.stream import DiagnosticStream
    from xplat.diff.models import ParsedDiffFile
    from xplat.files.ops import FileSystem


@dataclass(frozen=True)
class _PlannedWrite:
    """One file's state before and after; None content means absent."""

    path: str
    old_content: str | None
    new_content: str | None


class RefactorOps:
    """Holds suggestions for one repository and applies them to disk.

    Every file written by an apply is recorded with the undo manager, and
    the diagnostics a suggestion resolves are published to the stream as
    resolved by auto-fix.
    """

    def __init__(
        self,
        files: FileSystem,
        *,
        undo: UndoManager | None = None,
        stream: DiagnosticStream | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._files = files
        self._undo = undo or UndoManager()
        self._stream = stream
        self._log = logger or get_logger("refactor.ops")
        self._suggestions: dict[str, RefactorSuggestion] = {}
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    @property
    def undo_manager(self) -> UndoManager:
        return self._undo

    # =========================================================================
    # Registry
    # =========================================================================

    def add(self, suggestion: RefactorSuggestion) -> None:
        """Register suggestion, replacing any earlier one with the same id.

        A suggestion that is being applied is not replaced.
        """
        with self._lock:
            if suggestion.id in self._in_flight:
                self._log.info("suggestion_busy", suggestion_id=suggestion.id)
                return
            self._suggestions[suggestion.id] = suggestion

    def add_all(self, suggestions: Iterable[RefactorSuggestion]) -> None:
        for suggestion in suggestions:
            self.add(suggestion)

    def get(self, suggestion_id: str) -> RefactorSuggestion | None:
        with self._lock:
            return self._suggestions.get(suggestion_id)

    def pending(self) -> list[RefactorSuggestion]:
        """Pending suggestions, highest confidence first."""
        with self._lock:
            items = [s for s in self._suggestions.values() if s.is_pending]
        return sorted(items, key=lambda s: (-s.confidence, s.id))

    def preview(self, suggestion_id: str) -> str | None:
        """Unified diff of a suggestion, or None if unknown."""
        suggestion = self.get(suggestion_id)
        return suggestion.unified_diff if suggestion is not None else None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def apply_refactoring(self, suggestion_id: str, *, force: bool = False) -> ApplyResult:
        """Apply a pending suggestion's diff to disk.

        Only auto-applicable suggestions are applied unless force is set.
        On failure nothing stays written and the suggestion remains pending.
        """
        try:
            suggestion = self._claim(suggestion_id, force=force)
        except RefactorError as e:
            self._log.info("apply_rejected", suggestion_id=suggestion_id, error=e.error_name)
            return ApplyResult.failed(suggestion_id, e.message)

        result = ApplyResult.failed(suggestion_id, "apply did not complete")
        try:
            result = self._apply(suggestion)
        finally:
            with self._lock:
                if result.success:
                    suggestion.state = SuggestionState.APPLIED
                self._in_flight.discard(suggestion_id)

        if result.success:
            self._log.info(
                "suggestion_applied",
                suggestion_id=suggestion_id,
                files=len(result.files_written),
            )
            if self._stream is not None:
                for diagnostic_id in suggestion.resolves_diagnostics:
                    self._stream.emit_resolved(diagnostic_id, ResolutionMethod.AUTO_FIX)
        return result

    def dismiss_refactoring(self, suggestion_id: str, reason: str | None = None) -> bool:
        """Mark a pending suggestion dismissed. Touches no files.

        Returns whether the state changed. Unknown and already terminal
        suggestions are left alone.
        """
        with self._lock:
            suggestion = self._suggestions.get(suggestion_id)
            if (
                suggestion is None
                or not suggestion.is_pending
                or suggestion_id in self._in_flight
            ):
                self._log.debug("dismiss_ignored", suggestion_id=suggestion_id)
                return False
            suggestion.state = SuggestionState.DISMISSED
        self._log.info("suggestion_dismissed", suggestion_id=suggestion_id, reason=reason)
        return True

    # =========================================================================
    # Undo / redo
    # =========================================================================

    def undo_last(self) -> UndoEntry | None:
        """Restore the file of the most recent applied edit.

        Returns the entry, or None if there was nothing to undo or the
        restore write failed (the entry then stays on the undo stack).
        """
        entry = self._undo.pop_undo()
        if entry is None:
            return None
        try:
            self._write(entry.file_path, entry.old_content)
        except XplatError as e:
            self._log.error("undo_failed", path=entry.file_path, reason=e.message)
            self._undo.pop_redo()
            return None
        self._log.info("undo", path=entry.file_path, description=entry.description)
        return entry

    def redo_last(self) -> UndoEntry | None:
        """Re-apply the most recently undone edit."""
        entry = self._undo.pop_redo()
        if entry is None:
            return None
        try:
            self._write(entry.file_path, entry.new_content)
        except XplatError as e:
            self._log.error("redo_failed", path=entry.file_path, reason=e.message)
            self._undo.pop_undo()
            return None
        self._log.info("redo", path=entry.file_path, description=entry.description)
        return entry

    # =========================================================================
    # Internals
    # =========================================================================

    def _claim(self, suggestion_id: str, *, force: bool) -> RefactorSuggestion:
        """Mark a suggestion in flight for applying.

        Raises:
            RefactorError: If it is unknown, already being applied, no longer
                pending, or needs review and force is not set.
        """
        with self._lock:
            suggestion = self._suggestions.get(suggestion_id)
            if suggestion is None:
                raise RefactorError.not_found(suggestion_id)
            if suggestion_id in self._in_flight:
                raise RefactorError.in_progress(suggestion_id)
            if not suggestion.is_pending:
                raise RefactorError.not_pending(suggestion_id, suggestion.state.value)
            if not suggestion.is_auto_applicable and not force:
                raise RefactorError.not_auto_applicable(suggestion_id)
            self._in_flight.add(suggestion_id)
            return suggestion

    def _write(self, path: str, content: str | None) -> None:
        if content is None:
            if self._files.exists(path):
                self._files.delete_file(path)
        else:
            self._files.write_file(path, content)

    def _plan(self, parsed: ParsedDiffFile) -> list[_PlannedWrite]:
        if parsed.is_rename and parsed.original_path != parsed.modified_path:
            source = self._files.read_file(parsed.original_path)
            if self._files.exists(parsed.modified_path):
                raise DiffError.write_failed(parsed.modified_path, "rename target exists")
            new_content = patch_text(source, parsed) if parsed.hunks else source
            return [
                _PlannedWrite(parsed.original_path, source, None),
                _PlannedWrite(parsed.modified_path, None, new_content),
            ]
        path = parsed.path
        old_content = self._files.read_file(path) if self._files.exists(path) else None
        if parsed.is_new_file and old_content is not None:
            raise DiffError.hunk_mismatch(path, 0, "file absent", "file exists")
        return [_PlannedWrite(path, old_content, patch_text(old_content, parsed))]

    def _apply(self, suggestion: RefactorSuggestion) -> ApplyResult:
        try:
            parsed_files = parse_diff(suggestion.unified_diff)
            planned = [write for parsed in parsed_files for write in self._plan(parsed)]
        except XplatError as e:
            self._log.warning(
                "apply_failed",
                suggestion_id=suggestion.id,
                error=e.error_name,
                reason=e.message,
            )
            return ApplyResult.failed(suggestion.id, e.message)
        if not planned:
            return ApplyResult.failed(suggestion.id, "suggestion contains no file changes")

        written: list[_PlannedWrite] = []
        try:
            for write in planned:
                self._write(write.path, write.new_content)
                written.append(write)
        except XplatError as e:
            self._log.error(
                "apply_write_failed",
                suggestion_id=suggestion.id,
                reason=e.message,
                rolled_back=len(written),
            )
            self._rollback(written)
            return ApplyResult.failed(suggestion.id, e.message)

        for write in planned:
            self._undo.record_fix(
                write.path, write.old_content, write.new_content, suggestion.title
            )
        return ApplyResult.ok(suggestion.id, [w.path for w in planned])

    def _rollback(self, written: list[_PlannedWrite]) -> None:
        for write in reversed(written):
            try:
                self._write(write.path, write.old_content)
            except XplatError as e:
                self._log.error("rollback_failed", path=write.path, reason=e.message)
