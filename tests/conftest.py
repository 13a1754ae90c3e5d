"""Shared fixtures for viewstats tests."""

import pytest

from viewstats.core.storage import SQLiteStorage


@pytest.fixture
def storage(tmp_path):
    """A migrated SQLite storage handle in a temporary directory."""
    handle = SQLiteStorage(str(tmp_path / "data" / "views.db"))
    handle.migrate()
    yield handle
    handle.close()


@pytest.fixture
def insert_view(storage):
    """Insert a view row with an explicit UTC timestamp."""

    def _insert(url: str, ref: str = "", ua: str = "", time: str = "2024-03-05 14:30:00"):
        storage.execute(
            "INSERT INTO views(url, ref, useragent, time) VALUES (?, ?, ?, ?)",
            [url, ref, ua, time],
        )

    return _insert


@pytest.fixture
def count_views(storage):
    """Number of rows in the views table."""

    def _count() -> int:
        return storage.query("SELECT COUNT(*) AS n FROM views")[0]["n"]

    return _count
