"""Unified diff engine."""

from xplat.diff.engine import (
    DiffEngine,
    apply_edits,
    apply_hunks,
    compute_hunks,
    compute_lcs,
    generate_diff,
    generate_multi_file_diff,
    join_lines,
    parse_diff,
    patch_text,
    split_lines,
)
from xplat.diff.models import (
    AddedFile,
    DeletedFile,
    DiffHunk,
    DiffLine,
    DiffLineType,
    FileChangeSpec,
    LineEdit,
    ModifiedFile,
    ParsedDiffFile,
    PatchResult,
    RenamedFile,
)

__all__ = [
    "AddedFile",
    "DeletedFile",
    "DiffEngine",
    "DiffHunk",
    "DiffLine",
    "DiffLineType",
    "FileChangeSpec",
    "LineEdit",
    "ModifiedFile",
    "ParsedDiffFile",
    "PatchResult",
    "RenamedFile",
    "apply_edits",
    "apply_hunks",
    "compute_hunks",
    "compute_lcs",
    "generate_diff",
    "generate_multi_file_diff",
    "join_lines",
    "parse_diff",
    "patch_text",
    "split_lines",
]
