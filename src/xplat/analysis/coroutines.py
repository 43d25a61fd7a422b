"""Coroutine leaks and thread blocking."""

from __future__ import annotations

import re
from collections.abc import Iterator

from xplat.analysis.base import LineScanAnalyzer, match_range
from xplat.config.constants import COROUTINE_FIX_CONFIDENCE
from xplat.diagnostics.models import (
    AnalyzerSource,
    Diagnostic,
    DiagnosticCategory,
    DiagnosticFix,
    DiagnosticTag,
    Severity,
    TextEdit,
    TextRange,
)
from xplat.index.models import IndexedFile

GLOBAL_SCOPE_PATTERN = re.compile(r"\b(GlobalScope)\s*\.\s*(launch|async)\b")
THREAD_SLEEP_PATTERN = re.compile(r"\b(Thread\.sleep)\s*\(")
RUN_BLOCKING_PATTERN = re.compile(r"\brunBlocking\s*(?:<[^>]*>\s*)?[({]")


class CoroutineLeakAnalyzer(LineScanAnalyzer):
    """GlobalScope launches and blocking calls in every indexed source file.

    Fixes here depend on the surrounding code (a scope in reach, a
    suspending caller), so none is marked preferred.
    """

    name = "coroutine_leak"
    category = DiagnosticCategory.COROUTINE_SAFETY
    source = AnalyzerSource.COROUTINE_LEAK

    def _target_files(self, repo_path: str) -> list[IndexedFile]:
        return self._with_source_extension(self._store.files(repo_path))

    def _token_fix(
        self, file: IndexedFile, span: TextRange, title: str, replacement: str
    ) -> DiagnosticFix:
        return DiagnosticFix(
            title=title,
            description=title,
            edits=(TextEdit(file.path, span, replacement),),
            is_preferred=False,
            confidence=COROUTINE_FIX_CONFIDENCE,
        )

    def _scan_line(self, file: IndexedFile, line_number: int, line: str) -> Iterator[Diagnostic]:
        if match := GLOBAL_SCOPE_PATTERN.search(line):
            fix = self._token_fix(
                file, match_range(line_number, match, 1), "Launch in an owned scope", "scope"
            )
            yield self._line_diagnostic(
                "coroutine-global-scope",
                file,
                line_number,
                line,
                match,
                Severity.WARNING,
                f"GlobalScope.{match.group(2)} outlives its caller",
                explanation=(
                    "Coroutines started in GlobalScope are never cancelled with their "
                    "owner and leak work and memory. Launch in a lifecycle-bound scope."
                ),
                tags=(DiagnosticTag.FIXABLE,),
                fixes=(fix,),
            )

        if match := THREAD_SLEEP_PATTERN.search(line):
            fix = self._token_fix(
                file, match_range(line_number, match, 1), "Suspend with delay", "delay"
            )
            yield self._line_diagnostic(
                "coroutine-thread-sleep",
                file,
                line_number,
                line,
                match,
                Severity.ERROR,
                "Thread.sleep blocks the thread",
                explanation=(
                    "Blocking a thread stalls every coroutine scheduled on it. "
                    "Use delay() from a suspending function."
                ),
                tags=(DiagnosticTag.FIXABLE,),
                fixes=(fix,),
            )

        if match := RUN_BLOCKING_PATTERN.search(line):
            yield self._line_diagnostic(
                "coroutine-run-blocking",
                file,
                line_number,
                line,
                match,
                Severity.ERROR,
                "runBlocking blocks the calling thread",
                explanation=(
                    "runBlocking is unavailable on JS and Wasm targets and deadlocks "
                    "single-threaded dispatchers. Make the caller suspend instead."
                ),
                tags=(DiagnosticTag.CROSS_PLATFORM,),
            )
