"""Tests for config/constants.py module."""

from __future__ import annotations

from xplat.config.constants import (
    COROUTINE_FIX_CONFIDENCE,
    DEV_NULL,
    DIFF_CONTEXT_LINES,
    DISPATCHER_FIX_CONFIDENCE,
    STREAM_BUFFER_CAPACITY,
    STUB_FIX_CONFIDENCE,
    UNDO_MAX_HISTORY,
)


class TestDefaults:
    """Protocol defaults."""

    def test_stream_capacity(self) -> None:
        """Subscribers buffer 1000 events."""
        assert STREAM_BUFFER_CAPACITY == 1000

    def test_diff_context(self) -> None:
        """Unified diffs carry three context lines."""
        assert DIFF_CONTEXT_LINES == 3

    def test_undo_history(self) -> None:
        """Fifty undo entries are kept."""
        assert UNDO_MAX_HISTORY == 50

    def test_dev_null_marker(self) -> None:
        assert DEV_NULL == "/dev/null"


class TestFixConfidence:
    """Fix confidences are valid probabilities."""

    def test_within_unit_interval(self) -> None:
        for value in (STUB_FIX_CONFIDENCE, DISPATCHER_FIX_CONFIDENCE, COROUTINE_FIX_CONFIDENCE):
            assert 0.0 <= value <= 1.0
