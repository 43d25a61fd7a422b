"""Rule-based suggestion generation from fixable diagnostics.

Each diagnostic with at least one fix becomes one suggestion. The fix's
text edits are applied in memory against the live file contents and the
result is rendered as a unified diff, which is what RefactorOps applies.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from xplat.config.constants import DIFF_CONTEXT_LINES
from xplat.core.errors import DiffError, XplatError
from xplat.core.logging import get_logger
from xplat.diagnostics.models import (
    Diagnostic,
    DiagnosticCategory,
    DiagnosticFix,
    Severity,
    TextEdit,
)
from xplat.diff.engine import generate_multi_file_diff, parse_diff
from xplat.diff.models import AddedFile, FileChangeSpec, ModifiedFile
from xplat.refactor.models import (
    ChangeType,
    FileChange,
    RefactorCategory,
    RefactorPriority,
    RefactorRisk,
    RefactorSource,
    RefactorSuggestion,
    RiskSeverity,
    RiskType,
)

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from xplat.files.ops import FileSystemReader

_CATEGORY_MAP = {
    DiagnosticCategory.DECLARATION_PAIRING: RefactorCategory.PLATFORM_IMPLEMENTATION,
    DiagnosticCategory.THREAD_SAFETY: RefactorCategory.THREAD_SAFETY,
    DiagnosticCategory.API_MISUSE: RefactorCategory.API_USAGE,
    DiagnosticCategory.COROUTINE_SAFETY: RefactorCategory.COROUTINES,
    DiagnosticCategory.PERFORMANCE: RefactorCategory.PERFORMANCE,
}

_PRIORITY_MAP = {
    Severity.ERROR: RefactorPriority.CRITICAL,
    Severity.WARNING: RefactorPriority.HIGH,
    Severity.INFO: RefactorPriority.MEDIUM,
    Severity.HINT: RefactorPriority.LOW,
}

# Below this a fix is flagged as possibly changing behavior
_BEHAVIOR_RISK_CONFIDENCE = 0.8


def suggestion_id(diagnostic_id: str) -> str:
    return f"rule-{diagnostic_id}"


# =============================================================================
# Text edit application
# =============================================================================


def _offset(content: str, line_starts: list[int], line: int, column: int) -> int:
    """Character offset of a 1-based (line, column), clamped to the line's text."""
    if line < 1 or line > len(line_starts):
        raise DiffError.edit_out_of_range(line, line, len(line_starts) - 1)
    start = line_starts[line - 1]
    if line == len(line_starts):
        # Virtual line after the last terminator
        text_end = len(content)
    else:
        text_end = line_starts[line] - 1
        if text_end > start and content[text_end - 1] == "\r":
            text_end -= 1
    return min(start + max(column - 1, 0), text_end)


def apply_text_edits(content: str, edits: Iterable[TextEdit]) -> str:
    """Apply character-range edits to content.

    Columns past the end of a line clamp to the line's end, so a whole-line
    range never swallows the line terminator. Edits may not overlap.

    Raises:
        DiffError: If an edit starts outside the file or two edits overlap.
    """
    line_starts = [0]
    for i, ch in enumerate(content):
        if ch == "\n":
            line_starts.append(i + 1)

    spans: list[tuple[int, int, str, tuple[int, int]]] = []
    for edit in edits:
        r = edit.range
        start = _offset(content, line_starts, r.start_line, r.start_column)
        end = _offset(content, line_starts, r.end_line, r.end_column)
        if end < start:
            raise DiffError.edit_out_of_range(r.start_line, r.end_line, len(line_starts) - 1)
        spans.append((start, end, edit.new_text, (r.start_line, r.end_line)))

    spans.sort(key=lambda s: (s[0], s[1]))
    for first, second in zip(spans, spans[1:]):
        if second[0] < first[1]:
            raise DiffError.overlapping_edits(first[3], second[3])

    result = content
    for start, end, text, _ in reversed(spans):
        result = result[:start] + text + result[end:]
    return result


# =============================================================================
# Rule engine
# =============================================================================


class RuleEngine:
    """Turns diagnostics carrying fixes into refactor suggestions."""

    def __init__(
        self,
        files: FileSystemReader,
        *,
        context_lines: int = DIFF_CONTEXT_LINES,
        logger: BoundLogger | None = None,
    ) -> None:
        self._files = files
        self._context = context_lines
        self._log = logger or get_logger("refactor.rules")

    def generate_from_diagnostics(
        self, diagnostics: Iterable[Diagnostic]
    ) -> list[RefactorSuggestion]:
        """One suggestion per fixable diagnostic, in input order.

        Diagnostics without fixes, or whose fix no longer applies to the
        files on disk, are skipped.
        """
        suggestions: list[RefactorSuggestion] = []
        for diagnostic in diagnostics:
            suggestion = self.suggestion_for(diagnostic)
            if suggestion is not None:
                suggestions.append(suggestion)
        self._log.debug("suggestions_generated", count=len(suggestions))
        return suggestions

    def suggestion_for(self, diagnostic: Diagnostic) -> RefactorSuggestion | None:
        fix = diagnostic.preferred_fix or (diagnostic.fixes[0] if diagnostic.fixes else None)
        if fix is None:
            return None
        try:
            specs = self._change_specs(fix)
            unified_diff = generate_multi_file_diff(specs, self._context)
            parsed = parse_diff(unified_diff)
        except XplatError as e:
            self._log.info(
                "fix_not_applicable",
                diagnostic_id=diagnostic.id,
                error=e.error_name,
                reason=e.message,
            )
            return None
        if not unified_diff:
            return None

        changes = [
            FileChange(
                path=p.path,
                change_type=ChangeType.CREATE if p.is_new_file else ChangeType.MODIFY,
                hunks=p.hunks,
            )
            for p in parsed
        ]
        rationale = diagnostic.message
        if diagnostic.explanation:
            rationale = f"{rationale}\n\n{diagnostic.explanation}"
        return RefactorSuggestion(
            id=suggestion_id(diagnostic.id),
            title=fix.title,
            rationale=rationale,
            confidence=fix.confidence,
            category=_CATEGORY_MAP.get(diagnostic.category, RefactorCategory.CLEANUP),
            priority=_PRIORITY_MAP[diagnostic.severity],
            unified_diff=unified_diff,
            changes=changes,
            resolves_diagnostics=[diagnostic.id],
            is_auto_applicable=fix.is_preferred,
            risks=self._risks(fix, changes),
            source=RefactorSource.RULE_ENGINE,
        )

    def _change_specs(self, fix: DiagnosticFix) -> list[FileChangeSpec]:
        by_file: dict[str, list[TextEdit]] = {}
        for edit in fix.edits:
            by_file.setdefault(edit.file_path, []).append(edit)

        specs: list[FileChangeSpec] = []
        for path, edits in by_file.items():
            if self._files.exists(path):
                original = self._files.read_file(path)
                specs.append(ModifiedFile(path, original, apply_text_edits(original, edits)))
            else:
                specs.append(AddedFile(path, apply_text_edits("", edits)))
        return specs

    def _risks(self, fix: DiagnosticFix, changes: list[FileChange]) -> list[RefactorRisk]:
        risks: list[RefactorRisk] = []
        if any(c.change_type is ChangeType.CREATE for c in changes):
            risks.append(
                RefactorRisk(
                    RiskType.INCOMPLETE_IMPLEMENTATION,
                    RiskSeverity.MEDIUM,
                    "Generated implementation bodies are placeholders",
                    "Replace each TODO() body with the platform implementation",
                )
            )
        if not fix.is_preferred:
            risks.append(
                RefactorRisk(
                    RiskType.COMPILATION,
                    RiskSeverity.MEDIUM,
                    "Replacement may need imports or surrounding changes to compile",
                )
            )
        if fix.confidence < _BEHAVIOR_RISK_CONFIDENCE:
            risks.append(
                RefactorRisk(
                    RiskType.BEHAVIOR_CHANGE,
                    RiskSeverity.LOW,
                    "Runtime behavior of the rewritten code may differ",
                    "Review the change and run the affected tests",
                )
            )
        return risks
