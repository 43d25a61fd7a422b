"""Thread-safety checks for shared code on single-threaded platforms."""

from __future__ import annotations

import re
from collections.abc import Iterator

from xplat.analysis.base import LineScanAnalyzer, match_range
from xplat.config.constants import DISPATCHER_FIX_CONFIDENCE
from xplat.diagnostics.models import (
    AnalyzerSource,
    Diagnostic,
    DiagnosticCategory,
    DiagnosticFix,
    DiagnosticTag,
    Severity,
    TextEdit,
)
from xplat.index.models import IndexedFile

DISPATCHER_PATTERN = re.compile(r"Dispatchers\s*\.\s*(IO|Default)\b")
THREAD_PRIMITIVE_PATTERN = re.compile(r"\bThread\s*\(|\bsynchronized\s*\(|@Synchronized\b")
ATOMIC_PATTERN = re.compile(r"\bAtomic(?:Integer|Long|Reference|Boolean)\b")


class ThreadSafetyAnalyzer(LineScanAnalyzer):
    """Flags threading constructs in shared code that a single-threaded target lacks.

    Runs only when some source set of the repository targets the
    constrained platform. The three checks are independent and may all
    fire on one line.
    """

    name = "thread_safety"
    category = DiagnosticCategory.THREAD_SAFETY
    source = AnalyzerSource.THREAD_SAFETY

    def _should_run(self, repo_path: str) -> bool:
        needle = self._config.constrained_platform.lower()
        return any(
            needle in ss.platform.lower() for ss in self._store.repository_source_sets(repo_path)
        )

    def _scan_line(self, file: IndexedFile, line_number: int, line: str) -> Iterator[Diagnostic]:
        platform = self._config.constrained_platform

        if match := DISPATCHER_PATTERN.search(line):
            allowed = self._config.allowed_dispatcher
            fix = DiagnosticFix(
                title=f"Use {allowed}",
                description=f"Replace {match.group(0)} with {allowed}",
                edits=(TextEdit(file.path, match_range(line_number, match), allowed),),
                is_preferred=True,
                confidence=DISPATCHER_FIX_CONFIDENCE,
            )
            yield self._line_diagnostic(
                "thread-dispatcher",
                file,
                line_number,
                line,
                match,
                Severity.ERROR,
                f"Dispatchers.{match.group(1)} is unavailable on {platform}",
                explanation=(
                    f"The {platform} target runs on a single thread and has no "
                    f"Dispatchers.{match.group(1)}. Use {allowed} in shared code."
                ),
                tags=(DiagnosticTag.FIXABLE, DiagnosticTag.CROSS_PLATFORM),
                fixes=(fix,),
            )

        if match := THREAD_PRIMITIVE_PATTERN.search(line):
            primitive = match.group(0).rstrip("(").strip()
            yield self._line_diagnostic(
                "thread-primitive",
                file,
                line_number,
                line,
                match,
                Severity.ERROR,
                f"Thread primitive '{primitive}' is unsupported on {platform}",
                explanation=(
                    "Threads and monitors do not exist on a single-threaded target. "
                    "Use coroutines and a coroutine Mutex instead."
                ),
                tags=(DiagnosticTag.CROSS_PLATFORM,),
            )

        if match := ATOMIC_PATTERN.search(line):
            yield self._line_diagnostic(
                "thread-atomic",
                file,
                line_number,
                line,
                match,
                Severity.WARNING,
                f"{match.group(0)} has no effect on {platform}",
                explanation=(
                    "Atomics are harmless but pointless on a single-threaded target. "
                    "A plain variable behaves the same there."
                ),
                tags=(DiagnosticTag.CROSS_PLATFORM,),
            )
