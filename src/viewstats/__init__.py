"""
Minimal, privacy-friendly page view statistics.

Usage:
    from viewstats import setup_analytics

    analytics = setup_analytics(db_path="data/viewstats.db", passkey=hashed)

    # Mount the tracking and stats routes
    app.include_router(analytics.router, prefix="/analytics")

    # In templates: {{ analytics.tracking_script() }}

    # Or query directly
    rows = analytics.engine.views("pages", from_="2024-01-01")
"""

from .config import DEFAULT_DB_PATH, AnalyticsConfig
from .core.engine import QueryEngine, QueryError
from .core.models import AggregationRequest, ResultRow, UnknownViewError, ViewKind
from .core.recorder import EventRecorder
from .core.storage import D1Storage, SQLiteStorage, Storage, StorageError
from .routes import create_stats_router

__version__ = "0.1.0"
__all__ = [
    "setup_analytics",
    "Analytics",
    "create_storage",
    "AnalyticsConfig",
    "AggregationRequest",
    "EventRecorder",
    "QueryEngine",
    "QueryError",
    "ResultRow",
    "Storage",
    "StorageError",
    "UnknownViewError",
    "ViewKind",
]


def create_storage(config: AnalyticsConfig) -> Storage:
    """Open the storage handle the config points at."""
    if config.use_d1:
        return D1Storage(
            database_id=config.d1_database_id,
            account_id=config.cf_account_id,
            api_token=config.cf_api_token,
        )
    return SQLiteStorage(config.db_path)


class Analytics:
    """Main viewstats interface: one storage handle shared by recorder and engine."""

    def __init__(self, config: AnalyticsConfig, storage: Storage | None = None):
        self.config = config
        self.storage = storage or create_storage(config)
        self.storage.migrate()
        self.recorder = EventRecorder(self.storage)
        self.engine = QueryEngine(self.storage)
        self.router = create_stats_router(self.recorder, self.engine, config)

    def record(self, url: str, referrer: str = "", user_agent: str = "") -> None:
        """Record a page view; never raises on storage failure."""
        self.recorder.record(url, referrer, user_agent)

    def query(self, request: AggregationRequest) -> list[ResultRow]:
        return self.engine.query(request)

    def tracking_script(self) -> str:
        """Script tag loading the tracker from the mounted routes."""
        return f'<script async src="{self.config.base_url}/script.js"></script>'

    def close(self) -> None:
        self.storage.close()


def setup_analytics(
    db_path: str | None = None,
    passkey: str | None = None,
    base_url: str = "",
    d1_database_id: str | None = None,
    cf_account_id: str | None = None,
    cf_api_token: str | None = None,
    config: AnalyticsConfig | None = None,
) -> Analytics:
    """
    Set up viewstats.

    Args:
        db_path: SQLite database file (ignored when D1 is configured)
        passkey: Optional passkey protecting /stats (see config.hash_passkey)
        base_url: Public prefix the router is mounted under
        d1_database_id: Cloudflare D1 database ID
        cf_account_id: Cloudflare account ID
        cf_api_token: Cloudflare API token with D1 access
        config: A complete config; overrides every other argument

    Returns:
        Analytics instance with router, recorder, engine and tracking_script()
    """
    if config is None:
        config = AnalyticsConfig(
            db_path=db_path or DEFAULT_DB_PATH,
            d1_database_id=d1_database_id,
            cf_account_id=cf_account_id,
            cf_api_token=cf_api_token,
            passkey=passkey,
            base_url=base_url,
        )
    return Analytics(config)
