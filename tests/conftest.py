"""Pytest configuration shared across the suite."""

import pytest

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from app.clients.sqlite_store import SQLiteStore


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture()
def sqlite_store(tmp_path) -> SQLiteStore:
    """Fresh SQLite database in a not-yet-existing subdirectory."""
    return SQLiteStore(str(tmp_path / "nested" / "podcast_summaries.db"))
