"""Shared fixtures for index tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from xplat.index.db import Database


@pytest.fixture
def temp_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a temporary database with schema."""
    from xplat.index.db import Database

    db = Database(tmp_path / "nested" / "test.db")
    db.create_all()
    yield db
    db.dispose()
