"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (XPLAT__SECTION__KEY)
3. Repo YAML (.xplat/config.yaml)
4. Global YAML (~/.config/xplat/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    XPLAT__<SECTION>__<KEY>=<VALUE>

Examples:
    XPLAT__LOGGING__LEVEL=DEBUG
    XPLAT__ANALYSIS__MAX_PARALLEL=8
    XPLAT__STREAM__BUFFER_CAPACITY=5000
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from xplat.config.constants import DIFF_CONTEXT_LINES, STREAM_BUFFER_CAPACITY, UNDO_MAX_HISTORY

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_LANGUAGE_PRIORITY = [
    "kotlin",
    "java",
    "typescript",
    "javascript",
    "python",
    "rust",
    "go",
    "cpp",
    "csharp",
    "swift",
]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        XPLAT__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every scanned file.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Index store configuration.

    Env vars:
        XPLAT__INDEX__DB_PATH: Index database location (default: .xplat/index.db)
    """

    db_path: str | None = Field(
        default=None,
        description="Override for the SQLite index location. Relative paths resolve "
        "against the repository root.",
    )


class AnalysisConfig(BaseModel):
    """Analyzer configuration.

    Env vars:
        XPLAT__ANALYSIS__SHARED_PARTITION: Name of the shared source set
        XPLAT__ANALYSIS__CONSTRAINED_PLATFORM: Platform tag of the single-threaded target
        XPLAT__ANALYSIS__MAX_PARALLEL: Concurrent analyzer workers
    """

    shared_partition: str = Field(
        default="commonMain",
        description="Source set whose code must compile for every platform.",
    )
    constrained_platform: str = Field(
        default="wasm",
        description="Platform tag (case-insensitive substring) of the single-threaded target.",
    )
    allowed_dispatcher: str = Field(
        default="Dispatchers.Main",
        description="Dispatcher substituted for disallowed ones on the constrained platform.",
    )
    max_parallel: int = Field(default=4, ge=1, le=64)
    source_extensions: list[str] = Field(default_factory=lambda: [".kt"])
    language_priority: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LANGUAGE_PRIORITY),
        description="Tie-break order for extension-count language inference.",
    )

    @field_validator("source_extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        for ext in v:
            if not ext.startswith("."):
                raise ValueError(f"Extension must start with '.': {ext}")
        return v


class StreamConfig(BaseModel):
    """Diagnostic stream configuration."""

    buffer_capacity: int = Field(default=STREAM_BUFFER_CAPACITY, ge=1)


class DiffConfig(BaseModel):
    """Diff engine configuration."""

    context_lines: int = Field(default=DIFF_CONTEXT_LINES, ge=0, le=50)


class UndoConfig(BaseModel):
    """Undo history configuration."""

    max_history: int = Field(default=UNDO_MAX_HISTORY, ge=1)


class XplatConfig(BaseModel):
    """Root configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
    undo: UndoConfig = Field(default_factory=UndoConfig)
