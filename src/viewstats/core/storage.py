"""
Storage handles for the views table.

Two backends speak the same SQLite dialect:

- SQLiteStorage: a local database file (or ":memory:")
- D1Storage: a Cloudflare D1 database queried over its HTTP API

Both take positional "?" parameters and return rows as dicts keyed by
column alias, so the recorder and query engine never see the backend.
"""
import logging
import os
import sqlite3
from threading import Lock
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the storage backend fails to run a statement."""
    pass


# Applied in order; the version is the 1-based position in this list.
MIGRATIONS = [
    """
    CREATE TABLE IF NOT EXISTS views (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        url TEXT NOT NULL,
        ref TEXT,
        useragent TEXT,
        time TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_views_time ON views(time)",
]


class Storage:
    """Base class for a long-lived storage handle."""

    def execute(self, sql: str, params: Optional[list] = None) -> None:
        """Execute a statement without returning results."""
        raise NotImplementedError

    def query(self, sql: str, params: Optional[list] = None) -> list[dict[str, Any]]:
        """Execute a query and return all rows as dicts."""
        raise NotImplementedError

    def close(self) -> None:
        pass

    def migrate(self) -> int:
        """Apply pending schema migrations.

        Returns the number of migrations applied by this call.
        """
        self.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        rows = self.query("SELECT version FROM schema_migrations")
        applied = {r["version"] for r in rows}

        count = 0
        for version, statement in enumerate(MIGRATIONS, start=1):
            if version in applied:
                continue
            self.execute(statement)
            self.execute("INSERT INTO schema_migrations(version) VALUES (?)", [version])
            logger.info(f"Applied migration {version}")
            count += 1
        return count


class SQLiteStorage(Storage):
    """Storage backed by a local SQLite database file."""

    def __init__(self, path: str):
        self.path = path
        if path != ":memory:":
            directory = os.path.dirname(os.path.abspath(path))
            os.makedirs(directory, exist_ok=True)

        # Autocommit: each statement is its own transaction.
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._lock = Lock()

    def execute(self, sql: str, params: Optional[list] = None) -> None:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params or [])
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
            cursor.close()

    def query(self, sql: str, params: Optional[list] = None) -> list[dict[str, Any]]:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params or [])
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
            try:
                return [dict(row) for row in cursor.fetchall()]
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
            finally:
                cursor.close()

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class D1Storage(Storage):
    """Storage backed by a Cloudflare D1 database."""

    def __init__(
        self,
        database_id: str,
        account_id: str,
        api_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.database_id = database_id
        self.account_id = account_id
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport
        self.base_url = f"https://api.cloudflare.com/client/v4/accounts/{account_id}/d1/database/{database_id}"

    def query(self, sql: str, params: Optional[list] = None) -> list[dict[str, Any]]:
        """Execute a SQL query against D1."""
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    f"{self.base_url}/query",
                    headers={
                        "Authorization": f"Bearer {self.api_token}",
                        "Content-Type": "application/json",
                    },
                    json={"sql": sql, "params": params or []},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError(f"D1 request failed: {e}") from e

        if not data.get("success"):
            raise StorageError(f"D1 query failed: {data.get('errors')}")

        results = data.get("result", [])
        if results and len(results) > 0:
            return results[0].get("results", [])
        return []

    def execute(self, sql: str, params: Optional[list] = None) -> None:
        self.query(sql, params)
