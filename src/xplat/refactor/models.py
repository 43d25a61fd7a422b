"""Refactor models - suggestions, file changes, risks and undo entries."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from xplat.diff.models import DiffHunk


class RefactorCategory(Enum):
    PLATFORM_IMPLEMENTATION = "platform_implementation"
    THREAD_SAFETY = "thread_safety"
    API_USAGE = "api_usage"
    COROUTINES = "coroutines"
    PERFORMANCE = "performance"
    CLEANUP = "cleanup"


class RefactorPriority(Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RefactorSource(Enum):
    """Who proposed a suggestion."""

    RULE_ENGINE = "rule_engine"
    INFERENCE = "inference"
    USER_REQUESTED = "user_requested"


class SuggestionState(Enum):
    """Lifecycle: pending -> applied | dismissed. Both ends are terminal."""

    PENDING = "pending"
    APPLIED = "applied"
    DISMISSED = "dismissed"


class ChangeType(Enum):
    MODIFY = "modify"
    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"


class RiskType(Enum):
    BREAKING_API = "breaking_api"
    BEHAVIOR_CHANGE = "behavior_change"
    INCOMPLETE_IMPLEMENTATION = "incomplete_implementation"
    COMPILATION = "compilation"


class RiskSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class RefactorRisk:
    type: RiskType
    severity: RiskSeverity
    description: str
    mitigation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "mitigation": self.mitigation,
        }


@dataclass(frozen=True)
class FileChange:
    """Structured change to one file, with the hunks of its unified diff."""

    path: str
    change_type: ChangeType
    hunks: tuple[DiffHunk, ...] = ()
    new_path: str | None = None  # rename target

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "change_type": self.change_type.value,
            "new_path": self.new_path,
            "hunks": [
                {
                    "header": h.header,
                    "lines": [{"type": ln.type.value, "content": ln.content} for ln in h.lines],
                }
                for h in self.hunks
            ],
        }


@dataclass
class RefactorSuggestion:
    """A proposed multi-file change.

    The unified diff is what gets applied; changes is its structured form
    for display.
    """

    id: str
    title: str
    rationale: str
    confidence: float
    category: RefactorCategory
    priority: RefactorPriority
    unified_diff: str
    changes: list[FileChange] = field(default_factory=list)
    resolves_diagnostics: list[str] = field(default_factory=list)
    is_auto_applicable: bool = False
    risks: list[RefactorRisk] = field(default_factory=list)
    source: RefactorSource = RefactorSource.RULE_ENGINE
    created_at: float = field(default_factory=time.time)
    state: SuggestionState = SuggestionState.PENDING

    @property
    def is_pending(self) -> bool:
        return self.state is SuggestionState.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "rationale": self.rationale,
            "confidence": self.confidence,
            "category": self.category.value,
            "priority": self.priority.value,
            "unified_diff": self.unified_diff,
            "changes": [c.to_dict() for c in self.changes],
            "resolves_diagnostics": list(self.resolves_diagnostics),
            "is_auto_applicable": self.is_auto_applicable,
            "risks": [r.to_dict() for r in self.risks],
            "source": self.source.value,
            "created_at": self.created_at,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class UndoEntry:
    """One applied file edit.

    old_content is None when the edit created the file, new_content is None
    when it deleted the file.
    """

    file_path: str
    old_content: str | None
    new_content: str | None
    description: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApplyResult:
    """Outcome of applying a suggestion."""

    suggestion_id: str
    success: bool
    reason: str | None = None
    files_written: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, suggestion_id: str, files_written: list[str]) -> ApplyResult:
        return cls(suggestion_id, True, files_written=files_written)

    @classmethod
    def failed(cls, suggestion_id: str, reason: str) -> ApplyResult:
        return cls(suggestion_id, False, reason=reason)
