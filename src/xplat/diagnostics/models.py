"""Diagnostic models - findings, locations and proposed fixes.

Diagnostics are immutable. Anything that happens to a diagnostic after it
is created (resolution, dismissal) travels as an event on the stream.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(Enum):
    """Diagnostic severity level."""

    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    HINT = "HINT"

    @property
    def rank(self) -> int:
        """Sort key, most severe first."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2, Severity.HINT: 3}


class DiagnosticCategory(Enum):
    """What kind of problem a diagnostic reports."""

    DECLARATION_PAIRING = "declaration_pairing"
    COROUTINE_SAFETY = "coroutine_safety"
    THREAD_SAFETY = "thread_safety"
    API_MISUSE = "api_misuse"
    PERFORMANCE = "performance"
    MEMORY = "memory"
    COMPATIBILITY = "compatibility"
    DEPRECATION = "deprecation"
    STYLE = "style"


class AnalyzerSource(Enum):
    """Which analyzer produced a diagnostic."""

    DECLARATION_PAIRING = "declaration_pairing"
    THREAD_SAFETY = "thread_safety"
    API_MISUSE = "api_misuse"
    COROUTINE_LEAK = "coroutine_leak"
    EXTERNAL = "external"


class DiagnosticTag:
    """Well-known tag strings. Tags are an open set; these are the ones built in."""

    FIXABLE = "fixable"
    CROSS_PLATFORM = "cross-platform"
    BREAKING_CHANGE = "breaking-change"
    SECURITY = "security"
    DEPRECATED = "deprecated"


@dataclass(frozen=True)
class TextRange:
    """1-based, inclusive line and column range."""

    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @classmethod
    def line(cls, line: int, *, end_column: int = 1000) -> TextRange:
        """Range covering one whole physical line."""
        return cls(line, 1, line, end_column)

    def to_dict(self) -> dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_column": self.start_column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }


@dataclass(frozen=True)
class TextEdit:
    """Replace the text covered by range in file_path with new_text.

    Columns are 1-based, the end column is exclusive, and both clamp to the
    line length, so (n, 1, n, 1000) covers all of line n. A zero-width range
    inserts. Editing a file that does not exist yet creates it with new_text.
    """

    file_path: str
    range: TextRange
    new_text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "range": self.range.to_dict(),
            "new_text": self.new_text,
        }


@dataclass(frozen=True)
class DiagnosticFix:
    """A proposed fix: one or more edits with a human title."""

    title: str
    description: str
    edits: tuple[TextEdit, ...]
    is_preferred: bool = False
    confidence: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1]: {self.confidence}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "edits": [e.to_dict() for e in self.edits],
            "is_preferred": self.is_preferred,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class DiagnosticLocation:
    """Where a diagnostic points."""

    file_path: str
    range: TextRange
    module_path: str | None = None
    source_set: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "range": self.range.to_dict(),
            "module_path": self.module_path,
            "source_set": self.source_set,
        }


@dataclass(frozen=True)
class Diagnostic:
    """An analyzer finding."""

    id: str
    severity: Severity
    category: DiagnosticCategory
    message: str
    location: DiagnosticLocation
    source: AnalyzerSource
    explanation: str = ""
    code_snippet: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    fixes: tuple[DiagnosticFix, ...] = ()
    created_at: float = field(default_factory=time.time)
    is_active: bool = True

    @property
    def file_path(self) -> str:
        return self.location.file_path

    @property
    def line(self) -> int:
        return self.location.range.start_line

    @property
    def preferred_fix(self) -> DiagnosticFix | None:
        for fix in self.fixes:
            if fix.is_preferred:
                return fix
        return None

    @property
    def is_fixable(self) -> bool:
        return DiagnosticTag.FIXABLE in self.tags or bool(self.fixes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "explanation": self.explanation,
            "code_snippet": self.code_snippet,
            "location": self.location.to_dict(),
            "source": self.source.value,
            "created_at": self.created_at,
            "tags": sorted(self.tags),
            "fixes": [f.to_dict() for f in self.fixes],
            "is_active": self.is_active,
        }
