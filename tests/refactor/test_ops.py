"""Tests for the suggestion registry and apply/dismiss/undo lifecycle."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from xplat.analysis import (
    CoroutineLeakAnalyzer,
    DeclarationPairingAnalyzer,
    ThreadSafetyAnalyzer,
)
from xplat.core.errors import FileUnavailableError
from xplat.diagnostics import DiagnosticStream, ResolutionMethod
from xplat.diff import ModifiedFile, generate_multi_file_diff
from xplat.files import LocalFileSystem
from xplat.refactor import RefactorOps, RuleEngine
from xplat.refactor.models import (
    RefactorCategory,
    RefactorPriority,
    RefactorSuggestion,
    SuggestionState,
)

if TYPE_CHECKING:
    from conftest import KmpRepo

WORKER = "shared/src/commonMain/kotlin/com/example/Worker.kt"
COMMON_DIR = "shared/src/commonMain/kotlin/com/example"
STUB = "shared/src/wasmJsMain/kotlin/com/example/Platform.wasmJs.kt"


class FailingFileSystem(LocalFileSystem):
    """Local disk whose writes to chosen paths fail."""

    def __init__(self, root: Path, fail_on: set[str]) -> None:
        super().__init__(root)
        self.fail_on = fail_on

    def write_file(self, path: str, content: str) -> None:
        if path in self.fail_on:
            raise FileUnavailableError.for_path(path, "disk full")
        super().write_file(path, content)


class BlockingFileSystem(LocalFileSystem):
    """Local disk whose first write waits until released."""

    def __init__(self, root: Path) -> None:
        super().__init__(root)
        self.entered = threading.Event()
        self.release = threading.Event()

    def write_file(self, path: str, content: str) -> None:
        self.entered.set()
        self.release.wait(timeout=5)
        super().write_file(path, content)


def _suggestion(suggestion_id: str, diff: str, *, confidence: float = 0.9) -> RefactorSuggestion:
    return RefactorSuggestion(
        id=suggestion_id,
        title=suggestion_id,
        rationale="",
        confidence=confidence,
        category=RefactorCategory.CLEANUP,
        priority=RefactorPriority.LOW,
        unified_diff=diff,
        is_auto_applicable=True,
    )


def _dispatcher_suggestion(kmp_repo: KmpRepo) -> RefactorSuggestion:
    files = LocalFileSystem(kmp_repo.root)
    diagnostics = ThreadSafetyAnalyzer(kmp_repo.store, files).analyze(kmp_repo.key)
    (suggestion,) = RuleEngine(files).generate_from_diagnostics(diagnostics)
    return suggestion


def _stub_suggestion(kmp_repo: KmpRepo) -> RefactorSuggestion:
    files = LocalFileSystem(kmp_repo.root)
    diagnostics = DeclarationPairingAnalyzer(kmp_repo.store, files).analyze(kmp_repo.key)
    (suggestion,) = RuleEngine(files).generate_from_diagnostics(diagnostics)
    return suggestion


class TestRegistry:
    """Adding, listing and previewing suggestions."""

    def test_pending_sorted_by_confidence(self, tmp_path: Path) -> None:
        ops = RefactorOps(LocalFileSystem(tmp_path))
        ops.add_all(
            [
                _suggestion("b", "", confidence=0.5),
                _suggestion("a", "", confidence=0.5),
                _suggestion("c", "", confidence=0.9),
            ]
        )

        assert [s.id for s in ops.pending()] == ["c", "a", "b"]

    def test_preview(self, tmp_path: Path) -> None:
        ops = RefactorOps(LocalFileSystem(tmp_path))
        ops.add(_suggestion("a", "--- a/f\n+++ b/f\n"))

        assert ops.preview("a") == "--- a/f\n+++ b/f\n"
        assert ops.preview("missing") is None

    def test_add_replaces_same_id(self, tmp_path: Path) -> None:
        ops = RefactorOps(LocalFileSystem(tmp_path))
        ops.add(_suggestion("a", "one"))
        ops.add(_suggestion("a", "two"))

        assert ops.preview("a") == "two"
        assert len(ops.pending()) == 1


class TestApply:
    """Applying suggestions to disk."""

    def test_apply_dispatcher_fix(self, kmp_repo: KmpRepo) -> None:
        """The fix rewrites the line, records undo and resolves the diagnostic."""
        # Given a pending dispatcher suggestion and a stream subscriber
        stream = DiagnosticStream(capacity=16)
        ops = RefactorOps(LocalFileSystem(kmp_repo.root), stream=stream)
        suggestion = _dispatcher_suggestion(kmp_repo)
        ops.add(suggestion)
        sub = stream.subscribe()

        # When it is applied
        result = ops.apply_refactoring(suggestion.id)

        # Then the file changed and everything else followed
        assert result.success
        assert result.files_written == [kmp_repo.path(WORKER)]
        content = (kmp_repo.root / WORKER).read_text()
        assert "    val x = Dispatchers.Main\n" in content
        assert "Dispatchers.IO" not in content
        assert ops.get(suggestion.id).state is SuggestionState.APPLIED
        assert ops.pending() == []
        assert ops.undo_manager.summary().undo_count == 1
        (envelope,) = sub.drain()
        assert envelope.event.kind == "resolved"
        assert envelope.event.diagnostic_id == suggestion.resolves_diagnostics[0]
        assert envelope.event.resolution.method is ResolutionMethod.AUTO_FIX

    def test_control_separators_do_not_shift_the_fix(self, kmp_repo: KmpRepo) -> None:
        """Only "\\n" ends a line, so the fix lands on the dispatcher it was made for."""
        relative = f"{COMMON_DIR}/Separators.kt"
        original = 'val s = "a\x0cb\x1cc"\nval d = Dispatchers.IO\n'
        kmp_repo.add_file(relative, original)
        files = LocalFileSystem(kmp_repo.root)
        diagnostics = [
            d
            for d in ThreadSafetyAnalyzer(kmp_repo.store, files).analyze(kmp_repo.key)
            if d.file_path == kmp_repo.path(relative)
        ]
        (suggestion,) = RuleEngine(files).generate_from_diagnostics(diagnostics)
        ops = RefactorOps(files)
        ops.add(suggestion)

        result = ops.apply_refactoring(suggestion.id)

        assert result.success
        assert (kmp_repo.root / relative).read_text() == (
            'val s = "a\x0cb\x1cc"\nval d = Dispatchers.Main\n'
        )

    def test_apply_twice_is_rejected(self, kmp_repo: KmpRepo) -> None:
        ops = RefactorOps(LocalFileSystem(kmp_repo.root))
        suggestion = _dispatcher_suggestion(kmp_repo)
        ops.add(suggestion)
        ops.apply_refactoring(suggestion.id)

        result = ops.apply_refactoring(suggestion.id)

        assert not result.success
        assert result.reason == f"Suggestion {suggestion.id} is applied, not pending"

    def test_unknown_suggestion(self, tmp_path: Path) -> None:
        result = RefactorOps(LocalFileSystem(tmp_path)).apply_refactoring("nope")
        assert not result.success
        assert result.reason == "Unknown suggestion: nope"

    def test_manual_review_needs_force(self, kmp_repo: KmpRepo) -> None:
        kmp_repo.add_file(
            "shared/src/commonMain/kotlin/com/example/Nap.kt", "fun nap() = Thread.sleep(10)\n"
        )
        files = LocalFileSystem(kmp_repo.root)
        diagnostics = CoroutineLeakAnalyzer(kmp_repo.store, files).analyze(kmp_repo.key)
        (suggestion,) = RuleEngine(files).generate_from_diagnostics(diagnostics)
        ops = RefactorOps(files)
        ops.add(suggestion)

        refused = ops.apply_refactoring(suggestion.id)
        forced = ops.apply_refactoring(suggestion.id, force=True)

        assert not refused.success
        assert "requires manual review" in (refused.reason or "")
        assert forced.success
        nap = kmp_repo.root / "shared/src/commonMain/kotlin/com/example/Nap.kt"
        assert nap.read_text() == "fun nap() = delay(10)\n"

    def test_refused_apply_leaves_suggestion_free(self, tmp_path: Path) -> None:
        """A rejected apply never marks the suggestion in flight."""
        ops = RefactorOps(LocalFileSystem(tmp_path))
        suggestion = _suggestion("manual", "--- a/f\n+++ b/f\n")
        suggestion.is_auto_applicable = False
        ops.add(suggestion)

        refused = ops.apply_refactoring("manual")

        assert refused.reason == "Suggestion manual requires manual review"
        assert ops.dismiss_refactoring("manual") is True

    def test_stale_diff_leaves_file_untouched(self, kmp_repo: KmpRepo) -> None:
        """A file edited since the suggestion was made is not patched."""
        ops = RefactorOps(LocalFileSystem(kmp_repo.root))
        suggestion = _dispatcher_suggestion(kmp_repo)
        ops.add(suggestion)
        worker = kmp_repo.root / WORKER
        edited = worker.read_text().replace("val x", "val y")
        worker.write_text(edited)

        result = ops.apply_refactoring(suggestion.id)

        assert not result.success
        assert worker.read_text() == edited
        assert ops.get(suggestion.id).is_pending
        assert not ops.undo_manager.can_undo()

    def test_create_stub_then_undo_and_redo(self, kmp_repo: KmpRepo) -> None:
        ops = RefactorOps(LocalFileSystem(kmp_repo.root))
        suggestion = _stub_suggestion(kmp_repo)
        ops.add(suggestion)
        stub = kmp_repo.root / STUB

        assert ops.apply_refactoring(suggestion.id).success
        assert stub.read_text() == "package com.example\n\nactual class Platform() {\n}\n"

        undone = ops.undo_last()
        assert undone is not None and undone.old_content is None
        assert not stub.exists()

        assert ops.redo_last() is not None
        assert stub.exists()

    def test_stub_target_already_exists(self, kmp_repo: KmpRepo) -> None:
        ops = RefactorOps(LocalFileSystem(kmp_repo.root))
        suggestion = _stub_suggestion(kmp_repo)
        ops.add(suggestion)
        stub = kmp_repo.root / STUB
        stub.parent.mkdir(parents=True, exist_ok=True)
        stub.write_text("hand written\n")

        result = ops.apply_refactoring(suggestion.id)

        assert not result.success
        assert stub.read_text() == "hand written\n"

    def test_write_failure_rolls_back(self, tmp_path: Path) -> None:
        """When the second file cannot be written the first is restored."""
        a, b = tmp_path / "a.kt", tmp_path / "b.kt"
        a.write_text("a1\n")
        b.write_text("b1\n")
        diff = generate_multi_file_diff(
            [ModifiedFile(str(a), "a1\n", "a2\n"), ModifiedFile(str(b), "b1\n", "b2\n")]
        )
        ops = RefactorOps(FailingFileSystem(tmp_path, {str(b)}))
        ops.add(_suggestion("multi", diff))

        result = ops.apply_refactoring("multi")

        assert not result.success
        assert "disk full" in (result.reason or "")
        assert a.read_text() == "a1\n"
        assert b.read_text() == "b1\n"
        assert ops.get("multi").is_pending
        assert not ops.undo_manager.can_undo()

    def test_empty_diff_fails(self, tmp_path: Path) -> None:
        ops = RefactorOps(LocalFileSystem(tmp_path))
        ops.add(_suggestion("empty", ""))

        result = ops.apply_refactoring("empty")

        assert not result.success
        assert ops.get("empty").is_pending

    def test_concurrent_apply_is_rejected(self, kmp_repo: KmpRepo) -> None:
        """While an apply is writing, a second apply and a dismiss are refused."""
        files = BlockingFileSystem(kmp_repo.root)
        ops = RefactorOps(files)
        suggestion = _dispatcher_suggestion(kmp_repo)
        ops.add(suggestion)
        results = []

        worker = threading.Thread(
            target=lambda: results.append(ops.apply_refactoring(suggestion.id))
        )
        worker.start()
        assert files.entered.wait(timeout=5)

        second = ops.apply_refactoring(suggestion.id)
        dismissed = ops.dismiss_refactoring(suggestion.id)
        files.release.set()
        worker.join(timeout=5)

        assert not second.success
        assert "already being applied" in (second.reason or "")
        assert not dismissed
        assert results[0].success


class TestDismiss:
    """Dismissal changes state only."""

    def test_dismiss_pending(self, kmp_repo: KmpRepo) -> None:
        stream = DiagnosticStream(capacity=4)
        ops = RefactorOps(LocalFileSystem(kmp_repo.root), stream=stream)
        suggestion = _dispatcher_suggestion(kmp_repo)
        ops.add(suggestion)
        before = (kmp_repo.root / WORKER).read_text()
        sub = stream.subscribe()

        assert ops.dismiss_refactoring(suggestion.id, reason="false positive")

        assert ops.get(suggestion.id).state is SuggestionState.DISMISSED
        assert (kmp_repo.root / WORKER).read_text() == before
        assert sub.drain() == []
        assert not ops.apply_refactoring(suggestion.id).success

    def test_dismiss_is_idempotent(self, kmp_repo: KmpRepo) -> None:
        ops = RefactorOps(LocalFileSystem(kmp_repo.root))
        suggestion = _dispatcher_suggestion(kmp_repo)
        ops.add(suggestion)

        assert ops.dismiss_refactoring(suggestion.id)
        assert not ops.dismiss_refactoring(suggestion.id)
        assert not ops.dismiss_refactoring("unknown")


class TestUndoRedo:
    """Undo restores exactly what apply replaced."""

    def test_undo_restores_and_redo_reapplies(self, kmp_repo: KmpRepo) -> None:
        ops = RefactorOps(LocalFileSystem(kmp_repo.root))
        suggestion = _dispatcher_suggestion(kmp_repo)
        ops.add(suggestion)
        worker = kmp_repo.root / WORKER
        original = worker.read_text()
        ops.apply_refactoring(suggestion.id)
        fixed = worker.read_text()

        entry = ops.undo_last()
        assert entry is not None
        assert entry.description == suggestion.title
        assert worker.read_text() == original

        assert ops.redo_last() is entry
        assert worker.read_text() == fixed

    def test_nothing_to_undo(self, tmp_path: Path) -> None:
        ops = RefactorOps(LocalFileSystem(tmp_path))
        assert ops.undo_last() is None
        assert ops.redo_last() is None

    def test_failed_undo_keeps_history(self, tmp_path: Path) -> None:
        """A restore that cannot be written leaves the entry undoable."""
        target = tmp_path / "a.kt"
        target.write_text("new\n")
        files = FailingFileSystem(tmp_path, {str(target)})
        ops = RefactorOps(files)
        ops.undo_manager.record_fix(str(target), "old\n", "new\n", "edit")

        assert ops.undo_last() is None

        assert ops.undo_manager.can_undo()
        assert not ops.undo_manager.can_redo()
        assert target.read_text() == "new\n"


@pytest.mark.parametrize("count", [1, 3])
def test_each_apply_is_one_undo_step(tmp_path: Path, count: int) -> None:
    """Applying n single-file suggestions gives n undo entries."""
    ops = RefactorOps(LocalFileSystem(tmp_path))
    for i in range(count):
        path = tmp_path / f"f{i}.kt"
        path.write_text("a\n")
        diff = generate_multi_file_diff([ModifiedFile(str(path), "a\n", "b\n")])
        ops.add(_suggestion(f"s{i}", diff))
        assert ops.apply_refactoring(f"s{i}").success

    assert ops.undo_manager.summary().undo_count == count
