"""Analyzer framework.

An analyzer is anything with a ``name``, a ``category`` and an
``analyze`` method; the engine treats them polymorphically. BaseAnalyzer
supplies the failure boundary every analyzer must have: nothing raised
inside a run escapes ``analyze``, the failure is logged and the analyzer
contributes no diagnostics. LineScanAnalyzer adds the common shape of a
regex scanner over indexed files.
"""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from xplat.config.models import AnalysisConfig
from xplat.core.errors import FileUnavailableError
from xplat.core.logging import get_logger
from xplat.diagnostics.models import (
    AnalyzerSource,
    Diagnostic,
    DiagnosticCategory,
    DiagnosticFix,
    DiagnosticLocation,
    Severity,
    TextRange,
)
from xplat.diff.engine import split_lines

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from xplat.files.ops import FileSystemReader
    from xplat.index.models import IndexedFile
    from xplat.index.store import IndexStore

FileCallback = Callable[[str], None]
"""Invoked with a file path each time an analyzer starts on that file."""


@runtime_checkable
class Analyzer(Protocol):
    """Capability every analyzer provides."""

    @property
    def name(self) -> str: ...

    @property
    def category(self) -> DiagnosticCategory: ...

    def analyze(
        self,
        repo_path: str,
        *,
        cancel: threading.Event | None = None,
        on_file: FileCallback | None = None,
    ) -> list[Diagnostic]: ...


class BaseAnalyzer(ABC):
    """Analyzer with store, file reader, config and an injected logger."""

    name: str = "analyzer"
    category: DiagnosticCategory = DiagnosticCategory.STYLE
    source: AnalyzerSource = AnalyzerSource.EXTERNAL

    def __init__(
        self,
        store: IndexStore,
        files: FileSystemReader,
        *,
        config: AnalysisConfig | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._store = store
        self._files = files
        self._config = config or AnalysisConfig()
        self._log = logger or get_logger(f"analysis.{self.name}")

    def analyze(
        self,
        repo_path: str,
        *,
        cancel: threading.Event | None = None,
        on_file: FileCallback | None = None,
    ) -> list[Diagnostic]:
        try:
            diagnostics = list(self._run(str(repo_path), cancel, on_file))
        except Exception as e:
            self._log.error(
                "analyzer_failed",
                analyzer=self.name,
                repo=str(repo_path),
                error=str(e),
                exc_info=True,
            )
            return []
        self._log.debug("analyzer_done", analyzer=self.name, diagnostics=len(diagnostics))
        return diagnostics

    @abstractmethod
    def _run(
        self,
        repo_path: str,
        cancel: threading.Event | None,
        on_file: FileCallback | None,
    ) -> Iterable[Diagnostic]:
        """Produce diagnostics. May raise; analyze() contains it."""

    def _diagnostic(
        self,
        diagnostic_id: str,
        severity: Severity,
        message: str,
        *,
        file_path: str,
        range: TextRange,
        explanation: str = "",
        code_snippet: str | None = None,
        module_path: str | None = None,
        source_set: str | None = None,
        tags: Iterable[str] = (),
        fixes: Iterable[DiagnosticFix] = (),
        category: DiagnosticCategory | None = None,
    ) -> Diagnostic:
        return Diagnostic(
            id=diagnostic_id,
            severity=severity,
            category=category or self.category,
            message=message,
            explanation=explanation,
            code_snippet=code_snippet,
            location=DiagnosticLocation(
                file_path=file_path,
                range=range,
                module_path=module_path,
                source_set=source_set,
            ),
            source=self.source,
            tags=frozenset(tags),
            fixes=tuple(fixes),
        )


def match_range(line_number: int, match: re.Match[str], group: int = 0) -> TextRange:
    """Range of a regex match on one line, end column exclusive."""
    return TextRange(line_number, match.start(group) + 1, line_number, match.end(group) + 1)


class LineScanAnalyzer(BaseAnalyzer):
    """Runs per-line checks over a set of indexed files.

    Cancellation is honored between files. A file that cannot be read is
    logged and skipped; the rest of the scan continues.
    """

    def _should_run(self, repo_path: str) -> bool:  # noqa: ARG002
        return True

    def _target_files(self, repo_path: str) -> list[IndexedFile]:
        """Files in the shared partition with a configured source extension."""
        files = self._store.files_in_partitions(repo_path, [self._config.shared_partition])
        return self._with_source_extension(files)

    def _with_source_extension(self, files: list[IndexedFile]) -> list[IndexedFile]:
        exts = tuple(self._config.source_extensions)
        return [f for f in files if Path(f.path).suffix in exts]

    def _line_diagnostic(
        self,
        tag: str,
        file: IndexedFile,
        line_number: int,
        line: str,
        match: re.Match[str],
        severity: Severity,
        message: str,
        **kwargs: Any,
    ) -> Diagnostic:
        """Diagnostic for a match on one line, with id "<tag>-<file id>-<line>"."""
        return self._diagnostic(
            f"{tag}-{file.id}-{line_number}",
            severity,
            message,
            file_path=file.path,
            range=match_range(line_number, match),
            code_snippet=line.strip(),
            module_path=file.module_path,
            source_set=file.source_set,
            **kwargs,
        )

    @abstractmethod
    def _scan_line(self, file: IndexedFile, line_number: int, line: str) -> Iterator[Diagnostic]:
        """Diagnostics for one physical line."""

    def _run(
        self,
        repo_path: str,
        cancel: threading.Event | None,
        on_file: FileCallback | None,
    ) -> Iterator[Diagnostic]:
        if not self._should_run(repo_path):
            self._log.debug("analyzer_skipped", analyzer=self.name, repo=repo_path)
            return
        for file in self._target_files(repo_path):
            if cancel is not None and cancel.is_set():
                self._log.info("analyzer_cancelled", analyzer=self.name, at_file=file.path)
                return
            if on_file is not None:
                on_file(file.path)
            try:
                content = self._files.read_file(file.path)
            except FileUnavailableError as e:
                self._log.warning("file_unavailable", path=file.path, reason=e.message)
                continue
            for line_number, line in enumerate(split_lines(content), 1):
                yield from self._scan_line(file, line_number, line)
