"""Unified diff generation, parsing and application.

Generation walks a longest-common-subsequence trace of the two line
sequences. Output uses standard headers so it round-trips through
``patch`` and ``git apply`` as well as through parse_diff/apply_hunks.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from xplat.config.constants import DEV_NULL, DIFF_CONTEXT_LINES
from xplat.core.errors import DiffError, XplatError
from xplat.core.logging import get_logger
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

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from xplat.files.ops import FileSystem

HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


# =============================================================================
# Line helpers
# =============================================================================


def split_lines(content: str) -> list[str]:
    """Lines of content split on "\\n" only. A trailing newline adds no line.

    Form feeds, U+2028 and the other separators str.splitlines() honours stay
    inside their line, so line numbers match editors and patch(1). A "\\r"
    before the "\\n" stays on the line too and is written back unchanged.
    """
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def join_lines(lines: Sequence[str], *, trailing_newline: bool = True) -> str:
    text = "\n".join(lines)
    if lines and trailing_newline:
        text += "\n"
    return text


# =============================================================================
# LCS
# =============================================================================


def compute_lcs(a: Sequence[str], b: Sequence[str]) -> list[tuple[int, int]]:
    """Index pairs (i, j) with a[i] == b[j] forming a longest common subsequence.

    Common prefix and suffix are matched directly; only the middle goes
    through the O(n*m) table.
    """
    n, m = len(a), len(b)
    prefix = 0
    while prefix < n and prefix < m and a[prefix] == b[prefix]:
        prefix += 1
    suffix = 0
    while suffix < n - prefix and suffix < m - prefix and a[n - 1 - suffix] == b[m - 1 - suffix]:
        suffix += 1

    pairs = [(k, k) for k in range(prefix)]

    mid_a = a[prefix : n - suffix]
    mid_b = b[prefix : m - suffix]
    rows, cols = len(mid_a), len(mid_b)
    if rows and cols:
        # table[i][j] = LCS length of mid_a[i:] and mid_b[j:]
        table = [[0] * (cols + 1) for _ in range(rows + 1)]
        for i in range(rows - 1, -1, -1):
            row, below = table[i], table[i + 1]
            ai = mid_a[i]
            for j in range(cols - 1, -1, -1):
                if ai == mid_b[j]:
                    row[j] = below[j + 1] + 1
                else:
                    row[j] = below[j] if below[j] >= row[j + 1] else row[j + 1]
        i = j = 0
        while i < rows and j < cols:
            if mid_a[i] == mid_b[j]:
                pairs.append((prefix + i, prefix + j))
                i += 1
                j += 1
            elif table[i + 1][j] >= table[i][j + 1]:
                i += 1
            else:
                j += 1

    pairs.extend((n - suffix + k, m - suffix + k) for k in range(suffix))
    return pairs


@dataclass(frozen=True)
class _Step:
    type: DiffLineType
    content: str
    old_index: int  # old lines consumed before this step
    new_index: int  # new lines consumed before this step


def _edit_script(a: Sequence[str], b: Sequence[str]) -> list[_Step]:
    """Full line-by-line walk of both sequences, deletions before additions."""
    steps: list[_Step] = []
    i = j = 0
    for mi, mj in [*compute_lcs(a, b), (len(a), len(b))]:
        while i < mi:
            steps.append(_Step(DiffLineType.DELETION, a[i], i, j))
            i += 1
        while j < mj:
            steps.append(_Step(DiffLineType.ADDITION, b[j], i, j))
            j += 1
        if mi < len(a):
            steps.append(_Step(DiffLineType.CONTEXT, a[mi], i, j))
            i += 1
            j += 1
    return steps


# =============================================================================
# Generation
# =============================================================================


def _hunks(steps: list[_Step], context: int) -> list[DiffHunk]:
    changes = [k for k, s in enumerate(steps) if s.type is not DiffLineType.CONTEXT]
    if not changes:
        return []

    # Group change positions whose surrounding context would touch or overlap
    groups: list[tuple[int, int]] = []
    start = end = changes[0]
    for k in changes[1:]:
        if k - end - 1 <= 2 * context:
            end = k
        else:
            groups.append((start, end))
            start = end = k
    groups.append((start, end))

    hunks: list[DiffHunk] = []
    for first, last in groups:
        lo = max(0, first - context)
        hi = min(len(steps), last + context + 1)
        window = steps[lo:hi]
        lines: list[DiffLine] = []
        old_count = new_count = 0
        for s in window:
            if s.type is DiffLineType.CONTEXT:
                lines.append(DiffLine(s.type, s.content, s.old_index + 1, s.new_index + 1))
                old_count += 1
                new_count += 1
            elif s.type is DiffLineType.DELETION:
                lines.append(DiffLine(s.type, s.content, old_line=s.old_index + 1))
                old_count += 1
            else:
                lines.append(DiffLine(s.type, s.content, new_line=s.new_index + 1))
                new_count += 1
        old_base = window[0].old_index
        new_base = window[0].new_index
        hunks.append(
            DiffHunk(
                original_start=old_base + 1 if old_count else old_base,
                original_count=old_count,
                modified_start=new_base + 1 if new_count else new_base,
                modified_count=new_count,
                lines=tuple(lines),
            )
        )
    return hunks


def _header_path(path: str, prefix: str) -> str:
    return path if path == DEV_NULL else f"{prefix}{path}"


def compute_hunks(
    original: Sequence[str], modified: Sequence[str], context: int = DIFF_CONTEXT_LINES
) -> list[DiffHunk]:
    """Structured hunks turning original into modified."""
    return _hunks(_edit_script(original, modified), context)


def render_hunks(path_a: str, path_b: str, hunks: Iterable[DiffHunk]) -> str:
    out = [f"--- {_header_path(path_a, 'a/')}", f"+++ {_header_path(path_b, 'b/')}"]
    for hunk in hunks:
        out.append(hunk.header)
        out.extend(line.render() for line in hunk.lines)
    return "\n".join(out) + "\n"


def generate_diff(
    path_a: str,
    path_b: str,
    original: Sequence[str],
    modified: Sequence[str],
    context: int = DIFF_CONTEXT_LINES,
) -> str:
    """Unified diff text turning original into modified. Empty when identical."""
    hunks = compute_hunks(original, modified, context)
    if not hunks:
        return ""
    return render_hunks(path_a, path_b, hunks)


def generate_multi_file_diff(
    changes: Iterable[FileChangeSpec], context: int = DIFF_CONTEXT_LINES
) -> str:
    """Concatenated unified diff over several file changes."""
    parts: list[str] = []
    for change in changes:
        if isinstance(change, ModifiedFile):
            parts.append(
                generate_diff(
                    change.path,
                    change.path,
                    split_lines(change.original_content),
                    split_lines(change.modified_content),
                    context,
                )
            )
        elif isinstance(change, AddedFile):
            lines = split_lines(change.content)
            if lines:
                parts.append(generate_diff(DEV_NULL, change.path, [], lines, context))
            else:
                parts.append(render_hunks(DEV_NULL, change.path, []))
        elif isinstance(change, DeletedFile):
            lines = split_lines(change.content)
            if lines:
                parts.append(generate_diff(change.path, DEV_NULL, lines, [], context))
            else:
                parts.append(render_hunks(change.path, DEV_NULL, []))
        elif isinstance(change, RenamedFile):
            header = (
                f"diff --git a/{change.old_path} b/{change.new_path}\n"
                f"rename from {change.old_path}\n"
                f"rename to {change.new_path}\n"
            )
            body = ""
            if change.original_content is not None and change.modified_content is not None:
                body = generate_diff(
                    change.old_path,
                    change.new_path,
                    split_lines(change.original_content),
                    split_lines(change.modified_content),
                    context,
                )
            parts.append(header + body)
    return "".join(parts)


# =============================================================================
# Edits
# =============================================================================


def apply_edits(lines: Sequence[str], edits: Iterable[LineEdit]) -> list[str]:
    """Apply line edits, last edit first so earlier line numbers stay valid.

    Raises:
        DiffError: If an edit falls outside the file or two edits overlap.
    """
    ordered = sorted(edits, key=lambda e: (e.start_line, e.end_line), reverse=True)
    count = len(lines)
    for edit in ordered:
        if edit.start_line < 1 or edit.start_line > count + 1:
            raise DiffError.edit_out_of_range(edit.start_line, edit.end_line, count)
        if edit.end_line < edit.start_line - 1 or edit.end_line > count:
            raise DiffError.edit_out_of_range(edit.start_line, edit.end_line, count)
    for later, earlier in zip(ordered, ordered[1:]):
        if earlier.end_line >= later.start_line:
            raise DiffError.overlapping_edits(
                (earlier.start_line, earlier.end_line), (later.start_line, later.end_line)
            )

    result = list(lines)
    for edit in ordered:
        result[edit.start_line - 1 : edit.end_line] = edit.lines
    return result


# =============================================================================
# Parsing
# =============================================================================


def _strip_path(raw: str) -> str:
    path = raw.split("\t", 1)[0].strip()
    if path == DEV_NULL:
        return path
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


@dataclass
class _FileBuilder:
    original_path: str = ""
    modified_path: str = ""
    hunks: list[DiffHunk] = field(default_factory=list)
    is_rename: bool = False
    saw_header: bool = False

    def build(self) -> ParsedDiffFile:
        return ParsedDiffFile(
            original_path=self.original_path or self.modified_path,
            modified_path=self.modified_path or self.original_path,
            hunks=tuple(self.hunks),
            is_rename=self.is_rename,
        )


def parse_diff(text: str) -> list[ParsedDiffFile]:
    """Parse unified diff text into per-file sections.

    Hunk bodies are read by the line counts their headers announce, so a
    deleted line that happens to start with ``--- `` stays content.

    Raises:
        DiffError: On a hunk outside a file section, a bad header, or a
            hunk body shorter or longer than its header says.
    """
    files: list[ParsedDiffFile] = []
    current: _FileBuilder | None = None
    hunk: DiffHunk | None = None
    hunk_lines: list[DiffLine] = []
    old_left = new_left = 0
    old_no = new_no = 0

    def close_hunk() -> None:
        nonlocal hunk, hunk_lines
        if hunk is not None and current is not None:
            current.hunks.append(
                DiffHunk(
                    hunk.original_start,
                    hunk.original_count,
                    hunk.modified_start,
                    hunk.modified_count,
                    tuple(hunk_lines),
                )
            )
        hunk, hunk_lines = None, []

    def finish_file() -> None:
        nonlocal current
        close_hunk()
        if current is not None:
            files.append(current.build())
        current = None

    for lineno, line in enumerate(split_lines(text), 1):
        if hunk is not None and (old_left > 0 or new_left > 0):
            if line.startswith("\\"):
                continue
            if line == "" or line.startswith(" "):
                if old_left == 0 or new_left == 0:
                    raise DiffError.malformed("context line exceeds hunk counts", lineno)
                hunk_lines.append(DiffLine(DiffLineType.CONTEXT, line[1:], old_no, new_no))
                old_left -= 1
                new_left -= 1
                old_no += 1
                new_no += 1
            elif line.startswith("-"):
                if old_left == 0:
                    raise DiffError.malformed("deletion exceeds hunk counts", lineno)
                hunk_lines.append(DiffLine(DiffLineType.DELETION, line[1:], old_line=old_no))
                old_left -= 1
                old_no += 1
            elif line.startswith("+"):
                if new_left == 0:
                    raise DiffError.malformed("addition exceeds hunk counts", lineno)
                hunk_lines.append(DiffLine(DiffLineType.ADDITION, line[1:], new_line=new_no))
                new_left -= 1
                new_no += 1
            else:
                raise DiffError.malformed(f"unexpected line in hunk: {line!r}", lineno)
            if old_left == 0 and new_left == 0:
                close_hunk()
            continue

        if line.startswith("\\"):
            continue
        if line.startswith("diff --git "):
            finish_file()
            current = _FileBuilder()
        elif line.startswith("rename from "):
            if current is None or current.saw_header or current.hunks:
                finish_file()
                current = _FileBuilder()
            current.original_path = line[len("rename from ") :].strip()
            current.is_rename = True
        elif line.startswith("rename to "):
            if current is None:
                raise DiffError.malformed("'rename to' without 'rename from'", lineno)
            current.modified_path = line[len("rename to ") :].strip()
            current.is_rename = True
        elif line.startswith("--- "):
            if current is None or current.saw_header or current.hunks:
                finish_file()
                current = _FileBuilder()
            current.original_path = _strip_path(line[4:])
            current.saw_header = True
        elif line.startswith("+++ "):
            if current is None:
                raise DiffError.malformed("'+++' without '---'", lineno)
            current.modified_path = _strip_path(line[4:])
        elif line.startswith("@@"):
            if current is None:
                raise DiffError.malformed("hunk before file header", lineno)
            match = HUNK_HEADER.match(line)
            if match is None:
                raise DiffError.malformed(f"bad hunk header: {line!r}", lineno)
            o_start, o_count, m_start, m_count = match.groups()
            old_left = int(o_count) if o_count is not None else 1
            new_left = int(m_count) if m_count is not None else 1
            hunk = DiffHunk(int(o_start), old_left, int(m_start), new_left)
            old_no = int(o_start) if old_left else int(o_start) + 1
            new_no = int(m_start) if new_left else int(m_start) + 1
            if old_left == 0 and new_left == 0:
                close_hunk()
        # index, mode and other extended header lines carry nothing we use

    if hunk is not None and (old_left > 0 or new_left > 0):
        raise DiffError.malformed("diff ends inside a hunk")
    finish_file()
    return files


# =============================================================================
# Application
# =============================================================================


def apply_hunks(lines: Sequence[str], parsed: ParsedDiffFile) -> list[str]:
    """Replay every hunk of parsed against lines, verifying context and deletions.

    A running offset carries each hunk's net line delta into the position
    of the next one.

    Raises:
        DiffError: If a hunk's position or content does not match lines.
    """
    result = list(lines)
    offset = 0
    for hunk in parsed.hunks:
        base = hunk.original_start - 1 if hunk.original_count else hunk.original_start
        pos = base + offset
        if pos < 0 or pos > len(result):
            raise DiffError.hunk_mismatch(
                parsed.path, hunk.original_start, "hunk start within file", None
            )
        for dl in hunk.lines:
            if dl.type is DiffLineType.ADDITION:
                result.insert(pos, dl.content)
                pos += 1
                continue
            actual = result[pos] if pos < len(result) else None
            if actual != dl.content:
                raise DiffError.hunk_mismatch(parsed.path, pos - offset + 1, dl.content, actual)
            if dl.type is DiffLineType.DELETION:
                del result[pos]
            else:
                pos += 1
        offset += hunk.additions - hunk.deletions
    return result


def patch_text(original: str | None, parsed: ParsedDiffFile) -> str | None:
    """Apply parsed to original text. None as input means the file is absent,
    None as output means the patch deletes the file.

    Raises:
        DiffError: If the diff does not apply.
    """
    if original is None:
        if not parsed.is_new_file:
            raise DiffError.hunk_mismatch(parsed.path, 0, "existing file", None)
        lines: list[str] = []
        trailing = True
    else:
        lines = split_lines(original)
        trailing = original.endswith("\n") or not original
    patched = apply_hunks(lines, parsed)
    if parsed.is_deleted_file:
        if patched:
            raise DiffError.hunk_mismatch(parsed.path, len(patched), "empty file", patched[0])
        return None
    return join_lines(patched, trailing_newline=trailing)


class DiffEngine:
    """Diff operations bound to a file-content provider."""

    def __init__(
        self,
        file_system: FileSystem,
        *,
        context_lines: int = DIFF_CONTEXT_LINES,
        logger: BoundLogger | None = None,
    ) -> None:
        self._fs = file_system
        self._context = context_lines
        self._log = logger or get_logger("diff.engine")

    @property
    def context_lines(self) -> int:
        return self._context

    def generate_unified_diff(self, path: str, edits: Iterable[LineEdit]) -> str:
        """Diff between the live content of path and that content with edits applied.

        Raises:
            FileUnavailableError: If path cannot be read.
            DiffError: If an edit is out of range.
        """
        original = split_lines(self._fs.read_file(path))
        modified = apply_edits(original, edits)
        return generate_diff(path, path, original, modified, self._context)

    def generate_multi_file_diff(self, changes: Iterable[FileChangeSpec]) -> str:
        return generate_multi_file_diff(changes, self._context)

    def patched_content(self, path: str, parsed: ParsedDiffFile) -> str | None:
        """Content path would have after applying parsed; None for a deletion.

        Raises:
            FileUnavailableError: If an existing file cannot be read.
            DiffError: If the diff does not apply.
        """
        if parsed.is_new_file:
            if self._fs.exists(path):
                raise DiffError.hunk_mismatch(path, 0, "file absent", "file exists")
            return patch_text(None, parsed)
        return patch_text(self._fs.read_file(path), parsed)

    def apply_diff(self, path: str, parsed: ParsedDiffFile) -> PatchResult:
        """Apply parsed to path, writing once after the whole patch applied in memory."""
        try:
            new_content = self.patched_content(path, parsed)
            if new_content is None:
                self._fs.delete_file(path)
            else:
                self._fs.write_file(path, new_content)
        except XplatError as e:
            self._log.warning("patch_failed", path=path, error=e.error_name, reason=e.message)
            return PatchResult.failed(path, e.message, code=e.code.value)
        self._log.debug("patch_applied", path=path, hunks=len(parsed.hunks))
        return PatchResult.ok(path, new_content)
