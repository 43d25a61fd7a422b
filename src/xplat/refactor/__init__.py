"""Refactor suggestions, their apply/dismiss lifecycle and undo history."""

from xplat.refactor.models import (
    ApplyResult,
    ChangeType,
    FileChange,
    RefactorCategory,
    RefactorPriority,
    RefactorRisk,
    RefactorSource,
    RefactorSuggestion,
    RiskSeverity,
    RiskType,
    SuggestionState,
    UndoEntry,
)
from xplat.refactor.ops import RefactorOps
from xplat.refactor.rules import RuleEngine, apply_text_edits
from xplat.refactor.undo import UndoManager, UndoSummary

__all__ = [
    "ApplyResult",
    "ChangeType",
    "FileChange",
    "RefactorCategory",
    "RefactorOps",
    "RefactorPriority",
    "RefactorRisk",
    "RefactorSource",
    "RefactorSuggestion",
    "RiskSeverity",
    "RiskType",
    "RuleEngine",
    "SuggestionState",
    "UndoEntry",
    "UndoManager",
    "UndoSummary",
    "apply_text_edits",
]
