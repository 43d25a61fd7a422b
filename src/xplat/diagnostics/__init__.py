"""Diagnostics: models, stream events, broadcast stream and filters."""

from xplat.diagnostics.events import (
    AnalysisProgress,
    DiagnosticAdded,
    DiagnosticDismissed,
    DiagnosticEvent,
    DiagnosticResolution,
    DiagnosticResolved,
    FileCleared,
    ProgressUpdated,
    ResolutionMethod,
)
from xplat.diagnostics.filters import (
    DiagnosticFilter,
    apply_event,
    filter_diagnostics,
    group_by_category,
    group_by_file,
    group_by_module,
)
from xplat.diagnostics.models import (
    AnalyzerSource,
    Diagnostic,
    DiagnosticCategory,
    DiagnosticFix,
    DiagnosticLocation,
    DiagnosticTag,
    Severity,
    TextEdit,
    TextRange,
)
from xplat.diagnostics.stream import DiagnosticStream, Envelope, Subscription

__all__ = [
    # Models
    "AnalyzerSource",
    "Diagnostic",
    "DiagnosticCategory",
    "DiagnosticFix",
    "DiagnosticLocation",
    "DiagnosticTag",
    "Severity",
    "TextEdit",
    "TextRange",
    # Events
    "AnalysisProgress",
    "DiagnosticAdded",
    "DiagnosticDismissed",
    "DiagnosticEvent",
    "DiagnosticResolution",
    "DiagnosticResolved",
    "FileCleared",
    "ProgressUpdated",
    "ResolutionMethod",
    # Stream
    "DiagnosticStream",
    "Envelope",
    "Subscription",
    # Filters
    "DiagnosticFilter",
    "apply_event",
    "filter_diagnostics",
    "group_by_category",
    "group_by_file",
    "group_by_module",
]
