"""Tests for diagnostic filtering, grouping and event folding."""

from __future__ import annotations

import dataclasses
import re

import pytest

from xplat.diagnostics import (
    AnalysisProgress,
    AnalyzerSource,
    Diagnostic,
    DiagnosticAdded,
    DiagnosticCategory,
    DiagnosticDismissed,
    DiagnosticFilter,
    DiagnosticLocation,
    DiagnosticResolution,
    DiagnosticResolved,
    DiagnosticTag,
    FileCleared,
    ProgressUpdated,
    ResolutionMethod,
    Severity,
    TextRange,
    apply_event,
    filter_diagnostics,
    group_by_category,
    group_by_file,
    group_by_module,
)


def _diag(
    diag_id: str,
    *,
    severity: Severity = Severity.WARNING,
    category: DiagnosticCategory = DiagnosticCategory.THREAD_SAFETY,
    source: AnalyzerSource = AnalyzerSource.THREAD_SAFETY,
    path: str = "shared/src/commonMain/kotlin/Worker.kt",
    module: str | None = ":shared",
    tags: frozenset[str] = frozenset(),
) -> Diagnostic:
    return Diagnostic(
        id=diag_id,
        severity=severity,
        category=category,
        message=diag_id,
        location=DiagnosticLocation(path, TextRange.line(1), module_path=module),
        source=source,
        tags=tags,
    )


@pytest.fixture
def mixed() -> list[Diagnostic]:
    return [
        _diag(
            "missing-actual",
            severity=Severity.ERROR,
            category=DiagnosticCategory.DECLARATION_PAIRING,
            source=AnalyzerSource.DECLARATION_PAIRING,
            path="shared/src/commonMain/kotlin/Platform.kt",
            tags=frozenset({DiagnosticTag.FIXABLE, DiagnosticTag.CROSS_PLATFORM}),
        ),
        _diag("dispatcher", tags=frozenset({DiagnosticTag.FIXABLE})),
        _diag(
            "global-scope",
            severity=Severity.INFO,
            category=DiagnosticCategory.COROUTINE_SAFETY,
            source=AnalyzerSource.COROUTINE_LEAK,
            module=":app",
        ),
        _diag("hint", severity=Severity.HINT, module=None),
    ]


def _ids(diagnostics: list[Diagnostic]) -> list[str]:
    return [d.id for d in diagnostics]


class TestFilterDiagnostics:
    """Criteria combine with AND."""

    def test_all_keeps_everything_in_order(self, mixed: list[Diagnostic]) -> None:
        assert _ids(filter_diagnostics(mixed, DiagnosticFilter.ALL)) == _ids(mixed)

    def test_errors_only(self, mixed: list[Diagnostic]) -> None:
        assert _ids(filter_diagnostics(mixed, DiagnosticFilter.ERRORS_ONLY)) == ["missing-actual"]

    def test_errors_and_warnings(self, mixed: list[Diagnostic]) -> None:
        result = filter_diagnostics(mixed, DiagnosticFilter.ERRORS_AND_WARNINGS)
        assert _ids(result) == ["missing-actual", "dispatcher"]

    def test_fixable_only(self, mixed: list[Diagnostic]) -> None:
        result = filter_diagnostics(mixed, DiagnosticFilter.FIXABLE_ONLY)
        assert _ids(result) == ["missing-actual", "dispatcher"]

    def test_combined_criteria(self, mixed: list[Diagnostic]) -> None:
        """Severity and category together narrow to their intersection."""
        criteria = DiagnosticFilter(
            severities=frozenset({Severity.WARNING, Severity.HINT}),
            categories=frozenset({DiagnosticCategory.THREAD_SAFETY}),
            modules=frozenset({":shared"}),
        )
        assert _ids(filter_diagnostics(mixed, criteria)) == ["dispatcher"]

    def test_source_filter(self, mixed: list[Diagnostic]) -> None:
        criteria = DiagnosticFilter(sources=frozenset({AnalyzerSource.COROUTINE_LEAK}))
        assert _ids(filter_diagnostics(mixed, criteria)) == ["global-scope"]

    def test_file_pattern_is_a_search(self, mixed: list[Diagnostic]) -> None:
        criteria = DiagnosticFilter(file_pattern=r"Platform\.kt$")
        assert _ids(filter_diagnostics(mixed, criteria)) == ["missing-actual"]

    def test_invalid_pattern_raises(self, mixed: list[Diagnostic]) -> None:
        with pytest.raises(re.error):
            filter_diagnostics(mixed, DiagnosticFilter(file_pattern="("))

    def test_inactive_excluded_by_default(self, mixed: list[Diagnostic]) -> None:
        mixed[0] = dataclasses.replace(mixed[0], is_active=False)

        assert "missing-actual" not in _ids(filter_diagnostics(mixed, DiagnosticFilter.ALL))
        keep = DiagnosticFilter(exclude_inactive=False)
        assert "missing-actual" in _ids(filter_diagnostics(mixed, keep))


class TestGrouping:
    """Group helpers keep input order within each group."""

    def test_group_by_file(self, mixed: list[Diagnostic]) -> None:
        groups = group_by_file(mixed)
        assert _ids(groups["shared/src/commonMain/kotlin/Worker.kt"]) == [
            "dispatcher",
            "global-scope",
            "hint",
        ]

    def test_group_by_category(self, mixed: list[Diagnostic]) -> None:
        groups = group_by_category(mixed)
        assert set(groups) == {"declaration_pairing", "thread_safety", "coroutine_safety"}

    def test_group_by_module_uses_empty_key_for_none(self, mixed: list[Diagnostic]) -> None:
        groups = group_by_module(mixed)
        assert _ids(groups[""]) == ["hint"]
        assert _ids(groups[":app"]) == ["global-scope"]


class TestApplyEvent:
    """Folding stream events into a diagnostic list."""

    def test_added_replaces_same_id(self, mixed: list[Diagnostic]) -> None:
        updated = _diag("dispatcher", severity=Severity.ERROR)

        result = apply_event(mixed, DiagnosticAdded(updated))

        assert _ids(result).count("dispatcher") == 1
        assert result[-1].severity is Severity.ERROR

    def test_resolved_marks_inactive(self, mixed: list[Diagnostic]) -> None:
        event = DiagnosticResolved(
            "dispatcher", DiagnosticResolution(ResolutionMethod.AUTO_FIX)
        )

        result = apply_event(mixed, event)

        assert not next(d for d in result if d.id == "dispatcher").is_active
        assert mixed[1].is_active

    def test_dismissed_marks_inactive(self, mixed: list[Diagnostic]) -> None:
        result = apply_event(mixed, DiagnosticDismissed("hint", "noise"))
        assert not next(d for d in result if d.id == "hint").is_active

    def test_file_clear_removes_file(self, mixed: list[Diagnostic]) -> None:
        result = apply_event(mixed, FileCleared("shared/src/commonMain/kotlin/Worker.kt"))
        assert _ids(result) == ["missing-actual"]

    def test_progress_leaves_list_unchanged(self, mixed: list[Diagnostic]) -> None:
        event = ProgressUpdated(AnalysisProgress("analyzing", None, 0, 4, 0))
        result = apply_event(mixed, event)
        assert result == mixed
        assert result is not mixed
