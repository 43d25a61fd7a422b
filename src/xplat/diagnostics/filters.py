"""Query-time filtering and grouping of diagnostics."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import ClassVar

from xplat.diagnostics.events import DiagnosticEvent
from xplat.diagnostics.models import (
    AnalyzerSource,
    Diagnostic,
    DiagnosticCategory,
    DiagnosticTag,
    Severity,
)


@dataclass(frozen=True)
class DiagnosticFilter:
    """Criteria combined with AND. An empty set leaves its dimension unrestricted."""

    severities: frozenset[Severity] = field(default_factory=frozenset)
    categories: frozenset[DiagnosticCategory] = field(default_factory=frozenset)
    sources: frozenset[AnalyzerSource] = field(default_factory=frozenset)
    file_pattern: str | None = None  # regex, searched anywhere in the path
    modules: frozenset[str] = field(default_factory=frozenset)
    required_tags: frozenset[str] = field(default_factory=frozenset)
    exclude_inactive: bool = True

    ALL: ClassVar[DiagnosticFilter]
    ERRORS_ONLY: ClassVar[DiagnosticFilter]
    ERRORS_AND_WARNINGS: ClassVar[DiagnosticFilter]
    FIXABLE_ONLY: ClassVar[DiagnosticFilter]


DiagnosticFilter.ALL = DiagnosticFilter()
DiagnosticFilter.ERRORS_ONLY = DiagnosticFilter(severities=frozenset({Severity.ERROR}))
DiagnosticFilter.ERRORS_AND_WARNINGS = DiagnosticFilter(
    severities=frozenset({Severity.ERROR, Severity.WARNING})
)
DiagnosticFilter.FIXABLE_ONLY = DiagnosticFilter(
    required_tags=frozenset({DiagnosticTag.FIXABLE})
)


def filter_diagnostics(
    diagnostics: Iterable[Diagnostic], criteria: DiagnosticFilter
) -> list[Diagnostic]:
    """Diagnostics matching every criterion, in input order.

    Checks run in a fixed order: severity, category, source, file pattern,
    module, required tags, then activity.

    Raises:
        re.error: If file_pattern is not a valid regex.
    """
    pattern = re.compile(criteria.file_pattern) if criteria.file_pattern else None
    result: list[Diagnostic] = []
    for d in diagnostics:
        if criteria.severities and d.severity not in criteria.severities:
            continue
        if criteria.categories and d.category not in criteria.categories:
            continue
        if criteria.sources and d.source not in criteria.sources:
            continue
        if pattern is not None and not pattern.search(d.location.file_path):
            continue
        if criteria.modules and d.location.module_path not in criteria.modules:
            continue
        if not criteria.required_tags <= d.tags:
            continue
        if criteria.exclude_inactive and not d.is_active:
            continue
        result.append(d)
    return result


def _group(
    diagnostics: Iterable[Diagnostic], key: Callable[[Diagnostic], str]
) -> dict[str, list[Diagnostic]]:
    groups: dict[str, list[Diagnostic]] = {}
    for d in diagnostics:
        groups.setdefault(key(d), []).append(d)
    return groups


def group_by_file(diagnostics: Iterable[Diagnostic]) -> dict[str, list[Diagnostic]]:
    return _group(diagnostics, lambda d: d.location.file_path)


def group_by_category(diagnostics: Iterable[Diagnostic]) -> dict[str, list[Diagnostic]]:
    return _group(diagnostics, lambda d: d.category.value)


def group_by_module(diagnostics: Iterable[Diagnostic]) -> dict[str, list[Diagnostic]]:
    """Group by module path. Diagnostics without a module land under ""."""
    return _group(diagnostics, lambda d: d.location.module_path or "")


def apply_event(diagnostics: list[Diagnostic], event: DiagnosticEvent) -> list[Diagnostic]:
    """Fold one stream event into a diagnostic list, returning a new list.

    Resolved and dismissed diagnostics stay in the list as inactive copies;
    a file clear removes every diagnostic of that file. Progress events
    leave the list unchanged.
    """
    if event.kind == "added":
        kept = [d for d in diagnostics if d.id != event.diagnostic.id]
        return [*kept, event.diagnostic]
    if event.kind in ("resolved", "dismissed"):
        return [
            dataclasses.replace(d, is_active=False) if d.id == event.diagnostic_id else d
            for d in diagnostics
        ]
    if event.kind == "file_clear":
        return [d for d in diagnostics if d.location.file_path != event.file_path]
    return list(diagnostics)
