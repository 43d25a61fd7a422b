"""Diagnostic stream events.

Events form a tagged union discriminated by ``kind`` so they serialize
across process boundaries without relying on class identity. Consumers
switch on ``event.kind``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from xplat.diagnostics.models import Diagnostic, DiagnosticFix


class ResolutionMethod(Enum):
    """How a diagnostic stopped being a problem."""

    AUTO_FIX = "auto_fix"
    MANUAL_EDIT = "manual_edit"
    CODE_DELETED = "code_deleted"
    FALSE_POSITIVE = "false_positive"


@dataclass(frozen=True)
class DiagnosticResolution:
    method: ResolutionMethod
    fix: DiagnosticFix | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method.value,
            "fix": self.fix.to_dict() if self.fix else None,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AnalysisProgress:
    """Snapshot of a running analysis."""

    phase: str
    current_file: str | None
    files_processed: int
    total_files: int
    diagnostics_found: int

    @property
    def fraction(self) -> float:
        if self.total_files <= 0:
            return 0.0
        return min(1.0, self.files_processed / self.total_files)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "current_file": self.current_file,
            "files_processed": self.files_processed,
            "total_files": self.total_files,
            "diagnostics_found": self.diagnostics_found,
        }


@dataclass(frozen=True)
class DiagnosticAdded:
    diagnostic: Diagnostic
    kind: Literal["added"] = "added"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "diagnostic": self.diagnostic.to_dict()}


@dataclass(frozen=True)
class DiagnosticResolved:
    diagnostic_id: str
    resolution: DiagnosticResolution
    kind: Literal["resolved"] = "resolved"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "diagnostic_id": self.diagnostic_id,
            "resolution": self.resolution.to_dict(),
        }


@dataclass(frozen=True)
class DiagnosticDismissed:
    diagnostic_id: str
    reason: str | None = None
    kind: Literal["dismissed"] = "dismissed"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "diagnostic_id": self.diagnostic_id, "reason": self.reason}


@dataclass(frozen=True)
class FileCleared:
    """All diagnostics of one file are void, typically before it is re-analyzed."""

    file_path: str
    kind: Literal["file_clear"] = "file_clear"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "file_path": self.file_path}


@dataclass(frozen=True)
class ProgressUpdated:
    progress: AnalysisProgress
    kind: Literal["progress"] = "progress"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "progress": self.progress.to_dict()}


DiagnosticEvent = (
    DiagnosticAdded | DiagnosticResolved | DiagnosticDismissed | FileCleared | ProgressUpdated
)
