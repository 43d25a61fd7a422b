"""Shared-code metrics and analysis reports."""

from xplat.report.generator import AnalysisReport, render_json, render_markdown
from xplat.report.metrics import (
    ModuleSharedRanking,
    SharedCodeMetrics,
    compute_shared_metrics,
    percentage,
)

__all__ = [
    "AnalysisReport",
    "ModuleSharedRanking",
    "SharedCodeMetrics",
    "compute_shared_metrics",
    "percentage",
    "render_json",
    "render_markdown",
]
