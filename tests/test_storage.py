"""Tests for the SQLite and D1 storage handles."""

import json
import logging

import httpx
import pytest

from viewstats.core.storage import MIGRATIONS, D1Storage, SQLiteStorage, StorageError


class TestSQLiteStorage:
    """Test the local SQLite handle."""

    def test_creates_parent_directory(self, tmp_path):
        """Missing parent directories are created."""
        path = tmp_path / "nested" / "dir" / "views.db"
        storage = SQLiteStorage(str(path))
        try:
            assert path.parent.is_dir()
        finally:
            storage.close()

    def test_in_memory(self):
        """In-memory databases migrate too."""
        storage = SQLiteStorage(":memory:")
        try:
            assert storage.migrate() == len(MIGRATIONS)
        finally:
            storage.close()

    def test_migrate_is_idempotent(self, tmp_path, caplog):
        """Second migrate() applies nothing."""
        storage = SQLiteStorage(str(tmp_path / "views.db"))
        try:
            with caplog.at_level(logging.INFO, logger="viewstats.core.storage"):
                assert storage.migrate() == len(MIGRATIONS)
            assert "Applied migration 1" in caplog.text
            assert storage.migrate() == 0
        finally:
            storage.close()

    def test_migrations_survive_reopen(self, tmp_path):
        """Applied versions persist across connections."""
        path = str(tmp_path / "views.db")
        first = SQLiteStorage(path)
        first.migrate()
        first.close()

        second = SQLiteStorage(path)
        try:
            assert second.migrate() == 0
        finally:
            second.close()

    def test_time_defaults_to_now(self, storage):
        """The store fills in the view time."""
        storage.execute("INSERT INTO views(url) VALUES (?)", ["/a"])
        row = storage.query("SELECT time FROM views")[0]
        assert len(row["time"]) == len("2024-03-05 14:30:00")

    def test_rows_are_dicts(self, storage):
        """Rows come back as plain dicts."""
        storage.execute("INSERT INTO views(url, ref, useragent) VALUES (?, ?, ?)", ["/a", "", ""])
        rows = storage.query("SELECT url, ref FROM views")
        assert rows == [{"url": "/a", "ref": ""}]

    def test_bad_sql_raises_storage_error(self, storage):
        """Driver errors become StorageError."""
        with pytest.raises(StorageError):
            storage.query("SELECT nope FROM nowhere")
        with pytest.raises(StorageError):
            storage.execute("INSERT INTO nowhere VALUES (1)")

    def test_url_is_required(self, storage):
        """A view without a URL is refused."""
        with pytest.raises(StorageError):
            storage.execute("INSERT INTO views(url) VALUES (?)", [None])


def d1_handler(results=None, success=True, status_code=200, seen=None):
    """Build a MockTransport handler answering like the D1 query API."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        body = {
            "success": success,
            "errors": [] if success else [{"message": "no such table: views"}],
            "result": [{"results": results or []}],
        }
        return httpx.Response(status_code, json=body)

    return handler


class TestD1Storage:
    """Test the Cloudflare D1 handle with a mocked transport."""

    def make(self, handler) -> D1Storage:
        return D1Storage(
            database_id="test-db",
            account_id="test-account",
            api_token="test-token",
            transport=httpx.MockTransport(handler),
        )

    def test_posts_sql_and_params(self):
        """SQL and params are posted to the D1 query endpoint."""
        seen = []
        storage = self.make(d1_handler(results=[{"key": "/a", "count": 2}], seen=seen))

        rows = storage.query("SELECT url AS key FROM views WHERE url LIKE ?", ["%a%"])

        assert rows == [{"key": "/a", "count": 2}]
        request = seen[0]
        assert request.url.path == "/client/v4/accounts/test-account/d1/database/test-db/query"
        assert request.headers["Authorization"] == "Bearer test-token"
        assert json.loads(request.content) == {
            "sql": "SELECT url AS key FROM views WHERE url LIKE ?",
            "params": ["%a%"],
        }

    def test_missing_params_sent_as_empty_list(self):
        """No params are sent as an empty list."""
        seen = []
        storage = self.make(d1_handler(seen=seen))
        storage.execute("DELETE FROM schema_migrations WHERE 0")
        assert json.loads(seen[0].content)["params"] == []

    def test_unsuccessful_envelope_raises(self):
        """success=false raises with the D1 errors."""
        storage = self.make(d1_handler(success=False))
        with pytest.raises(StorageError) as excinfo:
            storage.query("SELECT * FROM views")
        assert "no such table" in str(excinfo.value)

    def test_http_error_raises(self):
        """HTTP error status raises."""
        storage = self.make(d1_handler(status_code=500))
        with pytest.raises(StorageError):
            storage.query("SELECT * FROM views")

    def test_transport_error_raises(self):
        """Connection failures raise."""
        def handler(request):
            raise httpx.ConnectError("connection refused")

        storage = self.make(handler)
        with pytest.raises(StorageError):
            storage.query("SELECT * FROM views")

    def test_empty_result(self):
        """An empty result envelope gives no rows."""
        storage = self.make(lambda request: httpx.Response(200, json={"success": True, "result": []}))
        assert storage.query("SELECT * FROM views") == []

    def test_migrate_runs_all_migrations(self):
        """Migrations run over D1 as well."""
        seen = []
        storage = self.make(d1_handler(seen=seen))

        assert storage.migrate() == len(MIGRATIONS)
        statements = [json.loads(r.content)["sql"] for r in seen]
        assert any("CREATE TABLE IF NOT EXISTS views" in s for s in statements)
