"""Diagnostic engine: runs analyzers concurrently and assembles a report.

Analyzers share no mutable state, so each runs in its own worker of a
bounded pool. The engine publishes every new diagnostic and progress
snapshot to the stream while the run is in flight, then returns a
deduplicated, sorted report.
"""

from __future__ import annotations

import contextvars
import threading
import time
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from xplat.core.logging import clear_run_id, get_logger, set_run_id
from xplat.diagnostics.models import Diagnostic

if TYPE_CHECKING:
    from collections.abc import Sequence

    from structlog.stdlib import BoundLogger

    from xplat.analysis.base import Analyzer, FileCallback
    from xplat.config.models import AnalysisConfig
    from xplat.diagnostics.stream import DiagnosticStream
    from xplat.files.ops import FileSystemReader
    from xplat.index.store import IndexStore


@dataclass
class AnalyzerResult:
    """What one analyzer contributed to a run."""

    analyzer: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    duration_seconds: float = 0.0
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class DiagnosticReport:
    """Result of one engine run."""

    repo_path: str
    run_id: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    analyzer_results: list[AnalyzerResult] = field(default_factory=list)
    duration_seconds: float = 0.0
    files_scanned: int = 0
    cancelled: bool = False

    @property
    def by_severity(self) -> dict[str, int]:
        return dict(Counter(d.severity.value for d in self.diagnostics))

    @property
    def by_category(self) -> dict[str, int]:
        return dict(Counter(d.category.value for d in self.diagnostics))

    @property
    def fixable_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.is_fixable)

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo_path": self.repo_path,
            "run_id": self.run_id,
            "duration_seconds": round(self.duration_seconds, 3),
            "files_scanned": self.files_scanned,
            "cancelled": self.cancelled,
            "by_severity": self.by_severity,
            "by_category": self.by_category,
            "analyzers": [
                {
                    "analyzer": r.analyzer,
                    "diagnostics": len(r.diagnostics),
                    "duration_seconds": round(r.duration_seconds, 3),
                    "error": r.error,
                }
                for r in self.analyzer_results
            ],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


def dedupe_key(diagnostic: Diagnostic) -> tuple[str, int, str]:
    return (diagnostic.location.file_path, diagnostic.line, diagnostic.message)


def sort_key(diagnostic: Diagnostic) -> tuple[int, str, int, str]:
    return (diagnostic.severity.rank, diagnostic.location.file_path, diagnostic.line, diagnostic.id)


class DiagnosticEngine:
    """Runs a set of analyzers over one repository."""

    def __init__(
        self,
        analyzers: Sequence[Analyzer],
        *,
        store: IndexStore | None = None,
        stream: DiagnosticStream | None = None,
        max_workers: int = 4,
        logger: BoundLogger | None = None,
    ) -> None:
        self._analyzers = list(analyzers)
        self._store = store
        self._stream = stream
        self._max_workers = max(1, max_workers)
        self._log = logger or get_logger("analysis.engine")

    @property
    def analyzers(self) -> list[Analyzer]:
        return list(self._analyzers)

    def _run_one(
        self,
        analyzer: Analyzer,
        repo_path: str,
        cancel: threading.Event,
        on_file: FileCallback,
    ) -> AnalyzerResult:
        start = time.monotonic()
        try:
            diagnostics = analyzer.analyze(repo_path, cancel=cancel, on_file=on_file)
        except Exception as e:
            # Analyzers outside BaseAnalyzer may not contain their own failures
            self._log.error("analyzer_raised", analyzer=analyzer.name, error=str(e), exc_info=True)
            return AnalyzerResult(
                analyzer.name, duration_seconds=time.monotonic() - start, error=str(e)
            )
        return AnalyzerResult(analyzer.name, diagnostics, time.monotonic() - start)

    def run(self, repo_path: str, *, cancel: threading.Event | None = None) -> DiagnosticReport:
        """Analyze repo_path with every analyzer.

        Setting cancel stops analyzers at their next file boundary; what
        they found so far is still reported.
        """
        repo_path = str(repo_path)
        cancel = cancel or threading.Event()
        run_id = set_run_id()
        started = time.monotonic()
        total_files = len(self._store.files(repo_path)) if self._store is not None else 0

        lock = threading.Lock()
        visited: set[str] = set()
        seen: set[tuple[str, int, str]] = set()
        collected: list[Diagnostic] = []

        def on_file(path: str) -> None:
            with lock:
                visited.add(path)
                processed = len(visited)
                found = len(collected)
            if self._stream is not None:
                self._stream.emit_progress(
                    "analyzing",
                    current_file=path,
                    files_processed=processed,
                    total_files=max(total_files, processed),
                    diagnostics_found=found,
                )

        self._log.info("analysis_started", repo=repo_path, analyzers=len(self._analyzers))
        if self._stream is not None:
            self._stream.emit_progress("starting", total_files=total_files)

        results: list[AnalyzerResult] = []
        try:
            workers = min(self._max_workers, max(1, len(self._analyzers)))
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="xplat-analyzer"
            ) as pool:
                futures: list[Future[AnalyzerResult]] = [
                    pool.submit(
                        contextvars.copy_context().run,
                        self._run_one,
                        analyzer,
                        repo_path,
                        cancel,
                        on_file,
                    )
                    for analyzer in self._analyzers
                ]
                for future in as_completed(futures):
                    result = future.result()
                    results.append(result)
                    for diagnostic in result.diagnostics:
                        key = dedupe_key(diagnostic)
                        with lock:
                            if key in seen:
                                continue
                            seen.add(key)
                            collected.append(diagnostic)
                        if self._stream is not None:
                            self._stream.emit(diagnostic)
                    self._log.debug(
                        "analyzer_finished",
                        analyzer=result.analyzer,
                        diagnostics=len(result.diagnostics),
                        duration=round(result.duration_seconds, 3),
                    )

            order = {a.name: i for i, a in enumerate(self._analyzers)}
            results.sort(key=lambda r: order.get(r.analyzer, len(order)))
            report = DiagnosticReport(
                repo_path=repo_path,
                run_id=run_id,
                diagnostics=sorted(collected, key=sort_key),
                analyzer_results=results,
                duration_seconds=time.monotonic() - started,
                files_scanned=len(visited),
                cancelled=cancel.is_set(),
            )
            if self._stream is not None:
                self._stream.emit_progress(
                    "cancelled" if report.cancelled else "complete",
                    files_processed=len(visited),
                    total_files=max(total_files, len(visited)),
                    diagnostics_found=len(report.diagnostics),
                )
            self._log.info(
                "analysis_complete",
                repo=repo_path,
                diagnostics=len(report.diagnostics),
                cancelled=report.cancelled,
                duration=round(report.duration_seconds, 3),
            )
            return report
        finally:
            clear_run_id()


def default_analyzers(
    store: IndexStore,
    files: FileSystemReader,
    config: AnalysisConfig | None = None,
    *,
    logger: BoundLogger | None = None,
) -> list[Analyzer]:
    """The built-in analyzers, sharing one store, reader and config."""
    from xplat.analysis.api_misuse import ApiMisuseAnalyzer
    from xplat.analysis.coroutines import CoroutineLeakAnalyzer
    from xplat.analysis.pairing import DeclarationPairingAnalyzer
    from xplat.analysis.thread_safety import ThreadSafetyAnalyzer

    return [
        cls(store, files, config=config, logger=logger)
        for cls in (
            DeclarationPairingAnalyzer,
            ThreadSafetyAnalyzer,
            ApiMisuseAnalyzer,
            CoroutineLeakAnalyzer,
        )
    ]
