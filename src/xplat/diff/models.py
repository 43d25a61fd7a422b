"""Diff engine models - hunks, parsed files, edits and change specs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from xplat.config.constants import DEV_NULL


class DiffLineType(Enum):
    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]


_PREFIXES = {DiffLineType.CONTEXT: " ", DiffLineType.ADDITION: "+", DiffLineType.DELETION: "-"}


@dataclass(frozen=True)
class DiffLine:
    type: DiffLineType
    content: str
    old_line: int | None = None  # 1-based, None for additions
    new_line: int | None = None  # 1-based, None for deletions

    def render(self) -> str:
        return f"{self.type.prefix}{self.content}"


@dataclass(frozen=True)
class DiffHunk:
    """One contiguous region of change with its context.

    Starts are 1-based and include leading context. A side with a zero
    count names the line after which the change applies (0 for file start).
    """

    original_start: int
    original_count: int
    modified_start: int
    modified_count: int
    lines: tuple[DiffLine, ...] = ()

    @property
    def header(self) -> str:
        return (
            f"@@ -{self.original_start},{self.original_count} "
            f"+{self.modified_start},{self.modified_count} @@"
        )

    @property
    def additions(self) -> int:
        return sum(1 for line in self.lines if line.type is DiffLineType.ADDITION)

    @property
    def deletions(self) -> int:
        return sum(1 for line in self.lines if line.type is DiffLineType.DELETION)


@dataclass(frozen=True)
class ParsedDiffFile:
    """One file section of a unified diff."""

    original_path: str
    modified_path: str
    hunks: tuple[DiffHunk, ...] = ()
    is_rename: bool = False

    @property
    def is_new_file(self) -> bool:
        return self.original_path == DEV_NULL

    @property
    def is_deleted_file(self) -> bool:
        return self.modified_path == DEV_NULL

    @property
    def path(self) -> str:
        """The path the change lands on."""
        return self.original_path if self.is_deleted_file else self.modified_path

    @property
    def additions(self) -> int:
        return sum(h.additions for h in self.hunks)

    @property
    def deletions(self) -> int:
        return sum(h.deletions for h in self.hunks)


@dataclass(frozen=True)
class LineEdit:
    """Replace lines start_line..end_line (1-based, inclusive) with new lines.

    end_line == start_line - 1 is a pure insertion before start_line.
    """

    start_line: int
    end_line: int
    lines: tuple[str, ...] = ()

    @classmethod
    def from_text(cls, start_line: int, end_line: int, text: str) -> LineEdit:
        """Edit whose replacement is text split on newlines. Empty text deletes."""
        return cls(start_line, end_line, tuple(text.split("\n")) if text else ())


# ============================================================================
# Multi-file change specs
# ============================================================================


@dataclass(frozen=True)
class ModifiedFile:
    path: str
    original_content: str
    modified_content: str
    kind: Literal["modified"] = "modified"


@dataclass(frozen=True)
class AddedFile:
    path: str
    content: str
    kind: Literal["added"] = "added"


@dataclass(frozen=True)
class DeletedFile:
    path: str
    content: str
    kind: Literal["deleted"] = "deleted"


@dataclass(frozen=True)
class RenamedFile:
    old_path: str
    new_path: str
    original_content: str | None = None
    modified_content: str | None = None
    kind: Literal["renamed"] = "renamed"


FileChangeSpec = ModifiedFile | AddedFile | DeletedFile | RenamedFile


@dataclass
class PatchResult:
    """Outcome of applying a diff to one file."""

    path: str
    new_content: str | None = None
    error: str | None = None
    details: dict[str, object] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, path: str, new_content: str | None) -> PatchResult:
        return cls(path=path, new_content=new_content)

    @classmethod
    def failed(cls, path: str, message: str, **details: object) -> PatchResult:
        return cls(path=path, error=message, details=details)
