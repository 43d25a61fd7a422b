"""Configuration constants.

Values here are protocol constraints and implementation details that are
not user-configurable. For configurable values, see models.py.
"""

# =============================================================================
# Diagnostic stream
# =============================================================================

STREAM_BUFFER_CAPACITY = 1000
"""Default per-subscriber buffer size of the diagnostic stream."""

# =============================================================================
# Diff engine
# =============================================================================

DIFF_CONTEXT_LINES = 3
"""Unchanged lines of context emitted around each change region."""

DEV_NULL = "/dev/null"
"""Path marker for the absent side of an added or deleted file."""

# =============================================================================
# Undo history
# =============================================================================

UNDO_MAX_HISTORY = 50
"""Maximum entries retained on each of the undo and redo stacks."""

# =============================================================================
# Fix confidence
# =============================================================================

STUB_FIX_CONFIDENCE = 0.85
"""Confidence of a generated platform-implementation stub."""

DISPATCHER_FIX_CONFIDENCE = 0.85
"""Confidence of a dispatcher token replacement."""

COROUTINE_FIX_CONFIDENCE = 0.8
"""Confidence of coroutine scope and suspension rewrites."""

# =============================================================================
# Layout
# =============================================================================

CONFIG_DIR_NAME = ".xplat"
"""Per-repository directory holding config.yaml and the default index."""

INDEX_DB_NAME = "index.db"
"""Default index database file name inside CONFIG_DIR_NAME."""
