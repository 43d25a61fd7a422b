"""Tests for the diagnostic engine."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

from xplat.analysis import BaseAnalyzer, DiagnosticEngine, default_analyzers
from xplat.analysis.base import FileCallback
from xplat.diagnostics import (
    AnalyzerSource,
    Diagnostic,
    DiagnosticCategory,
    DiagnosticLocation,
    DiagnosticStream,
    Severity,
    TextRange,
)
from xplat.files import LocalFileSystem

if TYPE_CHECKING:
    from conftest import KmpRepo


def _diag(diag_id: str, severity: Severity, path: str, line: int, message: str) -> Diagnostic:
    return Diagnostic(
        id=diag_id,
        severity=severity,
        category=DiagnosticCategory.STYLE,
        message=message,
        location=DiagnosticLocation(path, TextRange.line(line)),
        source=AnalyzerSource.EXTERNAL,
    )


class StaticAnalyzer:
    """Analyzer returning a fixed list, outside the BaseAnalyzer hierarchy."""

    category = DiagnosticCategory.STYLE

    def __init__(self, name: str, diagnostics: list[Diagnostic]) -> None:
        self.name = name
        self._diagnostics = diagnostics

    def analyze(
        self,
        repo_path: str,
        *,
        cancel: threading.Event | None = None,
        on_file: FileCallback | None = None,
    ) -> list[Diagnostic]:
        for d in self._diagnostics:
            if on_file is not None:
                on_file(d.file_path)
        return list(self._diagnostics)


class RaisingAnalyzer(StaticAnalyzer):
    def analyze(
        self,
        repo_path: str,
        *,
        cancel: threading.Event | None = None,
        on_file: FileCallback | None = None,
    ) -> list[Diagnostic]:
        raise RuntimeError("analyzer blew up")


class BrokenRun(BaseAnalyzer):
    name = "broken"

    def _run(
        self,
        repo_path: str,
        cancel: threading.Event | None,
        on_file: FileCallback | None,
    ) -> Iterable[Diagnostic]:
        raise ValueError("bad index row")


class TestDiagnosticEngine:
    """Running analyzers and assembling the report."""

    def test_default_analyzers_over_repository(self, kmp_repo: KmpRepo) -> None:
        """The sample repository yields both pairing findings and the dispatcher error."""
        analyzers = default_analyzers(kmp_repo.store, LocalFileSystem(kmp_repo.root))
        engine = DiagnosticEngine(analyzers, store=kmp_repo.store)

        report = engine.run(kmp_repo.key)

        ids = [d.id for d in report.diagnostics]
        assert "pairing-missing-com.example.Platform-wasmJs" in ids
        assert "pairing-mismatch-com.example.currentTimeMillis-jvm" in ids
        assert any(i.startswith("thread-dispatcher-") for i in ids)
        assert report.by_severity == {"ERROR": 2, "WARNING": 1}
        assert report.fixable_count == 2
        assert [r.analyzer for r in report.analyzer_results] == [a.name for a in analyzers]
        assert all(r.success for r in report.analyzer_results)
        assert report.run_id
        assert not report.cancelled

    def test_sorted_by_severity_then_location(self) -> None:
        diagnostics = [
            _diag("w", Severity.WARNING, "a.kt", 1, "w"),
            _diag("e2", Severity.ERROR, "b.kt", 1, "e2"),
            _diag("e1", Severity.ERROR, "a.kt", 9, "e1"),
            _diag("h", Severity.HINT, "a.kt", 1, "h"),
        ]
        engine = DiagnosticEngine([StaticAnalyzer("static", diagnostics)])

        report = engine.run("/repo")

        assert [d.id for d in report.diagnostics] == ["e1", "e2", "w", "h"]

    def test_duplicates_across_analyzers_are_dropped(self) -> None:
        """Same file, line and message from two analyzers is reported once."""
        first = StaticAnalyzer("first", [_diag("x", Severity.ERROR, "a.kt", 3, "same")])
        second = StaticAnalyzer("second", [_diag("y", Severity.ERROR, "a.kt", 3, "same")])

        report = DiagnosticEngine([first, second], max_workers=1).run("/repo")

        assert len(report.diagnostics) == 1
        assert len(report.analyzer_results) == 2

    def test_failing_analyzer_is_isolated(self) -> None:
        good = StaticAnalyzer("good", [_diag("ok", Severity.INFO, "a.kt", 1, "ok")])
        bad = RaisingAnalyzer("bad", [])

        report = DiagnosticEngine([bad, good]).run("/repo")

        assert [d.id for d in report.diagnostics] == ["ok"]
        results = {r.analyzer: r for r in report.analyzer_results}
        assert results["bad"].error == "analyzer blew up"
        assert results["good"].success

    def test_base_analyzer_contains_its_own_failure(self, kmp_repo: KmpRepo) -> None:
        analyzer = BrokenRun(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        report = DiagnosticEngine([analyzer]).run(kmp_repo.key)

        assert report.diagnostics == []
        assert report.analyzer_results[0].success

    def test_cancelled_run(self, kmp_repo: KmpRepo) -> None:
        """A cancel set before the run stops every analyzer at its first file."""
        cancel = threading.Event()
        cancel.set()
        analyzers = default_analyzers(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        report = DiagnosticEngine(analyzers, store=kmp_repo.store).run(kmp_repo.key, cancel=cancel)

        assert report.cancelled
        assert report.diagnostics == []
        assert report.files_scanned == 0

    def test_stream_sees_progress_and_diagnostics(self, kmp_repo: KmpRepo) -> None:
        stream = DiagnosticStream(capacity=1000)
        analyzers = default_analyzers(kmp_repo.store, LocalFileSystem(kmp_repo.root))
        engine = DiagnosticEngine(analyzers, store=kmp_repo.store, stream=stream)

        with stream.subscribe() as sub:
            report = engine.run(kmp_repo.key)
            events = [e.event for e in sub.drain()]

        assert events[0].kind == "progress"
        assert events[0].progress.phase == "starting"
        assert events[0].progress.total_files == 4
        assert events[-1].kind == "progress"
        assert events[-1].progress.phase == "complete"
        added = [e.diagnostic.id for e in events if e.kind == "added"]
        assert sorted(added) == sorted(d.id for d in report.diagnostics)
        assert report.files_scanned == 4

    def test_empty_analyzer_list(self) -> None:
        report = DiagnosticEngine([]).run("/repo")

        assert report.diagnostics == []
        assert report.to_dict()["analyzers"] == []
