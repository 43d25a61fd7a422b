"""Core module exports."""

from xplat.core.errors import (
    AnalysisError,
    ConfigError,
    DiffError,
    ErrorCode,
    FileUnavailableError,
    IndexStoreError,
    InternalError,
    RefactorError,
    XplatError,
)
from xplat.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "AnalysisError",
    "ConfigError",
    "DiffError",
    "ErrorCode",
    "FileUnavailableError",
    "IndexStoreError",
    "InternalError",
    "RefactorError",
    "XplatError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
