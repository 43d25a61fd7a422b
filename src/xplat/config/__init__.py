"""Config module exports."""

from xplat.config.loader import load_config, resolve_db_path
from xplat.config.models import (
    AnalysisConfig,
    DiffConfig,
    IndexConfig,
    LoggingConfig,
    StreamConfig,
    UndoConfig,
    XplatConfig,
)

__all__ = [
    "load_config",
    "resolve_db_path",
    "AnalysisConfig",
    "DiffConfig",
    "IndexConfig",
    "LoggingConfig",
    "StreamConfig",
    "UndoConfig",
    "XplatConfig",
]
