"""
Core view recording and aggregation.
"""

from .engine import QueryEngine, QueryError
from .models import AggregationRequest, ResultRow, UnknownViewError, ViewKind
from .recorder import EventRecorder
from .storage import D1Storage, SQLiteStorage, Storage, StorageError

__all__ = [
    "AggregationRequest",
    "D1Storage",
    "EventRecorder",
    "QueryEngine",
    "QueryError",
    "ResultRow",
    "SQLiteStorage",
    "Storage",
    "StorageError",
    "UnknownViewError",
    "ViewKind",
]
