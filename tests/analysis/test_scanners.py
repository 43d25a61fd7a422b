"""Tests for the line-scanning analyzers."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from xplat.analysis import ApiMisuseAnalyzer, CoroutineLeakAnalyzer, ThreadSafetyAnalyzer
from xplat.config.models import AnalysisConfig
from xplat.diagnostics import DiagnosticTag, Severity, TextRange
from xplat.files import LocalFileSystem

if TYPE_CHECKING:
    from conftest import KmpRepo

COMMON_DIR = "shared/src/commonMain/kotlin/com/example"
JVM_DIR = "shared/src/jvmMain/kotlin/com/example"


class TestThreadSafetyAnalyzer:
    """Threading constructs in shared code."""

    def test_dispatcher_io_error_with_fix(self, kmp_repo: KmpRepo) -> None:
        """Dispatchers.IO in commonMain is an error whose fix swaps the dispatcher."""
        analyzer = ThreadSafetyAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        diagnostics = analyzer.analyze(kmp_repo.key)

        (diagnostic,) = diagnostics
        assert diagnostic.severity is Severity.ERROR
        assert diagnostic.line == 7
        assert diagnostic.file_path == kmp_repo.path(f"{COMMON_DIR}/Worker.kt")
        assert diagnostic.code_snippet == "val x = Dispatchers.IO"
        assert DiagnosticTag.FIXABLE in diagnostic.tags

        fix = diagnostic.preferred_fix
        assert fix is not None
        (edit,) = fix.edits
        assert edit.range == TextRange(7, 13, 7, 27)
        assert edit.new_text == "Dispatchers.Main"

    def test_skipped_without_constrained_platform(self, kmp_repo: KmpRepo) -> None:
        """Nothing targets the configured platform, so the scan never starts."""
        analyzer = ThreadSafetyAnalyzer(
            kmp_repo.store,
            LocalFileSystem(kmp_repo.root),
            config=AnalysisConfig(constrained_platform="ios"),
        )
        visited: list[str] = []

        assert analyzer.analyze(kmp_repo.key, on_file=visited.append) == []
        assert visited == []

    def test_platform_match_is_case_insensitive(self, kmp_repo: KmpRepo) -> None:
        analyzer = ThreadSafetyAnalyzer(
            kmp_repo.store,
            LocalFileSystem(kmp_repo.root),
            config=AnalysisConfig(constrained_platform="WASMJS"),
        )
        assert len(analyzer.analyze(kmp_repo.key)) == 1

    def test_primitives_and_atomics(self, kmp_repo: KmpRepo) -> None:
        kmp_repo.add_file(
            f"{COMMON_DIR}/Counter.kt",
            "package com.example\n"
            "\n"
            "class Counter {\n"
            "    val n = AtomicInteger(0)\n"
            "    fun bump() = synchronized(this) { n.incrementAndGet() }\n"
            "}\n",
        )
        analyzer = ThreadSafetyAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        by_line = {d.line: d for d in analyzer.analyze(kmp_repo.key) if "Counter" in d.file_path}

        assert by_line[4].severity is Severity.WARNING
        assert by_line[4].fixes == ()
        assert by_line[5].severity is Severity.ERROR
        assert "synchronized" in by_line[5].message

    def test_platform_source_sets_not_scanned(self, kmp_repo: KmpRepo) -> None:
        kmp_repo.add_file(
            f"{JVM_DIR}/Io.jvm.kt", "val io = Dispatchers.IO\n", source_set="jvmMain"
        )
        analyzer = ThreadSafetyAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        assert all("jvmMain" not in d.file_path for d in analyzer.analyze(kmp_repo.key))

    def test_line_numbers_count_newlines_only(self, kmp_repo: KmpRepo) -> None:
        """Form feeds and other control separators stay inside their line."""
        kmp_repo.add_file(
            f"{COMMON_DIR}/Separators.kt", 'val s = "a\x0cb\x1cc"\nval d = Dispatchers.IO\n'
        )
        analyzer = ThreadSafetyAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        (diagnostic,) = [d for d in analyzer.analyze(kmp_repo.key) if "Separators" in d.file_path]

        assert diagnostic.line == 2
        assert diagnostic.code_snippet == "val d = Dispatchers.IO"

    def test_unreadable_file_is_skipped(self, kmp_repo: KmpRepo) -> None:
        """A file gone from disk is logged and the rest of the scan continues."""
        (kmp_repo.root / COMMON_DIR / "Platform.kt").unlink()
        analyzer = ThreadSafetyAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        assert [d.line for d in analyzer.analyze(kmp_repo.key)] == [7]

    def test_cancel_stops_scan(self, kmp_repo: KmpRepo) -> None:
        cancel = threading.Event()
        cancel.set()
        analyzer = ThreadSafetyAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        assert analyzer.analyze(kmp_repo.key, cancel=cancel) == []


class TestApiMisuseAnalyzer:
    """Platform-only imports and unscoped resources."""

    @pytest.fixture
    def analyzer(self, kmp_repo: KmpRepo) -> ApiMisuseAnalyzer:
        return ApiMisuseAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

    def test_platform_imports(self, kmp_repo: KmpRepo, analyzer: ApiMisuseAnalyzer) -> None:
        kmp_repo.add_file(
            f"{COMMON_DIR}/Imports.kt",
            "package com.example\n"
            "\n"
            "import android.os.Build\n"
            "import platform.Foundation.NSDate\n"
            "import java.io.File\n"
            "import kotlinx.coroutines.flow.Flow\n",
        )

        diagnostics = analyzer.analyze(kmp_repo.key)

        assert sorted(d.id.split("-")[2] for d in diagnostics) == ["android", "ios", "jvm"]
        assert all(d.severity is Severity.ERROR for d in diagnostics)
        assert all(DiagnosticTag.CROSS_PLATFORM in d.tags for d in diagnostics)

    def test_unscoped_resources(self, kmp_repo: KmpRepo, analyzer: ApiMisuseAnalyzer) -> None:
        kmp_repo.add_file(
            f"{COMMON_DIR}/Io.kt",
            "fun a() = FileInputStream(f)\n"
            "fun b() = FileInputStream(f).use { it.read() }\n"
            "fun c() = HttpClient()\n",
        )

        diagnostics = analyzer.analyze(kmp_repo.key)

        assert [(d.line, d.severity) for d in diagnostics] == [
            (1, Severity.WARNING),
            (3, Severity.WARNING),
        ]
        assert "HttpClient" in diagnostics[1].message

    def test_clean_repository(self, kmp_repo: KmpRepo, analyzer: ApiMisuseAnalyzer) -> None:
        assert analyzer.analyze(kmp_repo.key) == []


class TestCoroutineLeakAnalyzer:
    """GlobalScope launches and blocking calls."""

    def test_findings(self, kmp_repo: KmpRepo) -> None:
        kmp_repo.add_file(
            f"{JVM_DIR}/Jobs.jvm.kt",
            "fun start() {\n"
            "    GlobalScope.launch { work() }\n"
            "    Thread.sleep(100)\n"
            "    runBlocking { work() }\n"
            "}\n",
            source_set="jvmMain",
        )
        analyzer = CoroutineLeakAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        by_line = {d.line: d for d in analyzer.analyze(kmp_repo.key)}

        assert set(by_line) == {2, 3, 4}
        assert by_line[2].severity is Severity.WARNING
        assert by_line[3].severity is Severity.ERROR
        assert by_line[4].fixes == ()

    def test_fixes_are_not_preferred(self, kmp_repo: KmpRepo) -> None:
        kmp_repo.add_file(f"{COMMON_DIR}/Sleep.kt", "fun f() { Thread.sleep(5) }\n")
        analyzer = CoroutineLeakAnalyzer(kmp_repo.store, LocalFileSystem(kmp_repo.root))

        (diagnostic,) = analyzer.analyze(kmp_repo.key)

        assert diagnostic.preferred_fix is None
        (fix,) = diagnostic.fixes
        assert fix.edits[0].range == TextRange(1, 11, 1, 23)
        assert fix.edits[0].new_text == "delay"
