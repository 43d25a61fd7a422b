"""xplat error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index
- 4xxx: Analysis
- 5xxx: Diff / patch
- 6xxx: Refactor
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Index (3xxx)
    INDEX_UNAVAILABLE = 3001
    INDEX_INVALID_PAIRING = 3002
    INDEX_DUPLICATE_SYMBOL = 3003

    # Analysis (4xxx)
    ANALYZER_FAILED = 4001
    FILE_UNAVAILABLE = 4002

    # Diff (5xxx)
    DIFF_MALFORMED = 5001
    DIFF_EDIT_OUT_OF_RANGE = 5002
    DIFF_HUNK_MISMATCH = 5003
    DIFF_WRITE_FAILED = 5004
    DIFF_OVERLAPPING_EDITS = 5005

    # Refactor (6xxx)
    REFACTOR_NOT_FOUND = 6001
    REFACTOR_NOT_PENDING = 6002
    REFACTOR_NOT_AUTO_APPLICABLE = 6003
    REFACTOR_IN_PROGRESS = 6004

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(eq=False)
class XplatError(Exception):
    """Base error with structured context for serialized responses."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'DIFF_HUNK_MISMATCH')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(XplatError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class IndexStoreError(XplatError):
    """Index store write-path errors. Reads degrade to empty results instead."""

    @classmethod
    def unavailable(cls, reason: str) -> "IndexStoreError":
        return cls(
            code=ErrorCode.INDEX_UNAVAILABLE,
            message=f"Index store unavailable: {reason}",
            retryable=True,
            details={"reason": reason},
        )

    @classmethod
    def invalid_pairing(cls, shared_symbol_id: int, reason: str) -> "IndexStoreError":
        return cls(
            code=ErrorCode.INDEX_INVALID_PAIRING,
            message=f"Invalid pairing for symbol {shared_symbol_id}: {reason}",
            details={"shared_symbol_id": shared_symbol_id, "reason": reason},
        )

    @classmethod
    def duplicate_symbol(cls, qualified_name: str) -> "IndexStoreError":
        return cls(
            code=ErrorCode.INDEX_DUPLICATE_SYMBOL,
            message=f"Qualified name already indexed: {qualified_name}",
            details={"qualified_name": qualified_name},
        )


class AnalysisError(XplatError):
    """Analyzer and file-content errors."""

    @classmethod
    def analyzer_failed(cls, analyzer: str, reason: str) -> "AnalysisError":
        return cls(
            code=ErrorCode.ANALYZER_FAILED,
            message=f"Analyzer '{analyzer}' failed: {reason}",
            details={"analyzer": analyzer, "reason": reason},
        )


class FileUnavailableError(AnalysisError):
    """A file could not be read from or written to the file-content provider."""

    @classmethod
    def for_path(cls, path: str, reason: str) -> "FileUnavailableError":
        return cls(
            code=ErrorCode.FILE_UNAVAILABLE,
            message=f"File unavailable: {path} ({reason})",
            retryable=True,
            details={"path": path, "reason": reason},
        )


class DiffError(XplatError):
    """Structural diff/patch failures."""

    @classmethod
    def malformed(cls, reason: str, line_number: int | None = None) -> "DiffError":
        where = f" at line {line_number}" if line_number is not None else ""
        return cls(
            code=ErrorCode.DIFF_MALFORMED,
            message=f"Malformed diff{where}: {reason}",
            details={"reason": reason, "line": line_number},
        )

    @classmethod
    def edit_out_of_range(cls, start: int, end: int, line_count: int) -> "DiffError":
        return cls(
            code=ErrorCode.DIFF_EDIT_OUT_OF_RANGE,
            message=f"Edit range {start}-{end} is outside file bounds (1-{line_count + 1})",
            details={"start": start, "end": end, "line_count": line_count},
        )

    @classmethod
    def hunk_mismatch(cls, path: str, line: int, expected: str, actual: str | None) -> "DiffError":
        return cls(
            code=ErrorCode.DIFF_HUNK_MISMATCH,
            message=(
                f"Hunk does not apply to {path} at line {line}: "
                f"expected {expected!r}, found {actual!r}"
            ),
            details={"path": path, "line": line, "expected": expected, "actual": actual},
        )

    @classmethod
    def overlapping_edits(cls, first: tuple[int, int], second: tuple[int, int]) -> "DiffError":
        return cls(
            code=ErrorCode.DIFF_OVERLAPPING_EDITS,
            message=f"Edits overlap: lines {first[0]}-{first[1]} and {second[0]}-{second[1]}",
            details={"first": list(first), "second": list(second)},
        )

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "DiffError":
        return cls(
            code=ErrorCode.DIFF_WRITE_FAILED,
            message=f"Failed to write {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class RefactorError(XplatError):
    """Suggestion lifecycle errors."""

    @classmethod
    def not_found(cls, suggestion_id: str) -> "RefactorError":
        return cls(
            code=ErrorCode.REFACTOR_NOT_FOUND,
            message=f"Unknown suggestion: {suggestion_id}",
            details={"suggestion_id": suggestion_id},
        )

    @classmethod
    def not_pending(cls, suggestion_id: str, state: str) -> "RefactorError":
        return cls(
            code=ErrorCode.REFACTOR_NOT_PENDING,
            message=f"Suggestion {suggestion_id} is {state}, not pending",
            details={"suggestion_id": suggestion_id, "state": state},
        )

    @classmethod
    def not_auto_applicable(cls, suggestion_id: str) -> "RefactorError":
        return cls(
            code=ErrorCode.REFACTOR_NOT_AUTO_APPLICABLE,
            message=f"Suggestion {suggestion_id} requires manual review",
            details={"suggestion_id": suggestion_id},
        )

    @classmethod
    def in_progress(cls, suggestion_id: str) -> "RefactorError":
        return cls(
            code=ErrorCode.REFACTOR_IN_PROGRESS,
            message=f"Suggestion {suggestion_id} is already being applied",
            retryable=True,
            details={"suggestion_id": suggestion_id},
        )


class InternalError(XplatError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
