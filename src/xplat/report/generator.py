"""Analysis reports: shared-code metrics, diagnostics and fix suggestions.

Rendered as Markdown for people and as JSON for tooling.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from xplat.diagnostics.models import Severity
from xplat.index.models import SHARED_PLATFORM
from xplat.report.metrics import SharedCodeMetrics, compute_shared_metrics

if TYPE_CHECKING:
    from collections.abc import Iterable

    from xplat.analysis.engine import DiagnosticReport
    from xplat.diagnostics.models import Diagnostic
    from xplat.index.store import IndexStore
    from xplat.refactor.models import RefactorSuggestion

DEFAULT_TOP = 10


@dataclass
class AnalysisReport:
    """Everything one report shows about a repository."""

    repo_name: str
    repo_path: str
    metrics: SharedCodeMetrics
    diagnostics: list[Diagnostic] = field(default_factory=list)
    suggestions: list[RefactorSuggestion] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def build(
        cls,
        store: IndexStore,
        diagnostic_report: DiagnosticReport,
        suggestions: Iterable[RefactorSuggestion] = (),
        *,
        repo_name: str | None = None,
    ) -> AnalysisReport:
        """Compute metrics for the analyzed repository and bundle the results."""
        repo_path = diagnostic_report.repo_path
        return cls(
            repo_name=repo_name or Path(repo_path).name,
            repo_path=repo_path,
            metrics=compute_shared_metrics(store, repo_path),
            diagnostics=list(diagnostic_report.diagnostics),
            suggestions=list(suggestions),
        )

    @property
    def by_severity(self) -> dict[str, int]:
        """Diagnostic counts in severity order, absent severities omitted."""
        counts = Counter(d.severity for d in self.diagnostics)
        return {s.value: counts[s] for s in Severity if counts[s]}

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repo_name,
            "path": self.repo_path,
            "generated_at": self.generated_at.isoformat(),
            "metrics": self.metrics.to_dict(),
            "diagnostics_count": len(self.diagnostics),
            "suggestions_count": len(self.suggestions),
            "by_severity": self.by_severity,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "suggestions": [s.to_dict() for s in self.suggestions],
        }


def render_json(report: AnalysisReport) -> str:
    return json.dumps(report.to_dict(), indent=2) + "\n"


def _platform_order(platform: str) -> tuple[bool, str]:
    return (platform != SHARED_PLATFORM, platform)


def render_markdown(report: AnalysisReport, *, top: int = DEFAULT_TOP) -> str:
    """Markdown report listing at most top diagnostics and suggestions."""
    metrics = report.metrics
    lines: list[str] = [
        "# xplat analysis report",
        "",
        f"**Repository:** {report.repo_name}",
        f"**Path:** `{report.repo_path}`",
        f"**Generated:** {report.generated_at.isoformat(timespec='seconds')}",
        "",
        "## Shared code metrics",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total lines of code | {metrics.total_lines} |",
        f"| Shared lines of code | {metrics.shared_lines} |",
        f"| Shared code percentage | {metrics.shared_percentage:.1f}% |",
        f"| Shared declarations | {metrics.shared_declarations} |",
        f"| Platform implementations | {metrics.platform_implementations} |",
        f"| Pairing coverage | {metrics.pairing_coverage:.1f}% |",
        "",
    ]

    if metrics.platform_lines:
        lines += ["### Platform breakdown", "", "| Platform | Lines |", "|----------|-------|"]
        for platform in sorted(metrics.platform_lines, key=_platform_order):
            lines.append(f"| {platform} | {metrics.platform_lines[platform]} |")
        lines.append("")

    if metrics.module_rankings:
        lines += [
            "### Module ranking",
            "",
            "| Rank | Module | Shared lines | Total lines | Shared |",
            "|------|--------|--------------|-------------|--------|",
        ]
        for r in metrics.module_rankings:
            lines.append(
                f"| {r.rank} | {r.display_name} (`{r.module_path}`) | {r.shared_lines} "
                f"| {r.total_lines} | {r.shared_percentage:.1f}% |"
            )
        lines.append("")

    lines += ["## Diagnostics", "", f"Total issues found: {len(report.diagnostics)}", ""]
    if report.diagnostics:
        lines += ["| Severity | Count |", "|----------|-------|"]
        lines += [f"| {severity} | {count} |" for severity, count in report.by_severity.items()]
        lines += ["", "### Top issues", ""]
        for i, d in enumerate(report.diagnostics[:top], 1):
            lines += [
                f"{i}. **{d.message}** ({d.severity.value})",
                f"   - File: `{d.file_path}`",
                f"   - Line: {d.line}",
                "",
            ]

    lines += ["## Refactoring suggestions", "", f"Total suggestions: {len(report.suggestions)}"]
    for i, s in enumerate(report.suggestions[:top], 1):
        lines += [
            "",
            f"{i}. **{s.title}**",
            f"   - Category: {s.category.value}",
            f"   - Confidence: {s.confidence * 100:.0f}%",
            f"   - Auto-applicable: {'Yes' if s.is_auto_applicable else 'No'}",
        ]

    return "\n".join(lines) + "\n"
