"""
Aggregation query engine for recorded views.

Builds one parameterized aggregate statement per request from the view
kind and its filters, runs it against the storage handle and maps each
row to a ResultRow. Filter values only ever travel as bound parameters.
"""
import logging
from typing import Optional

from pydantic import ValidationError

from .models import AggregationRequest, ResultRow, UnknownViewError, ViewKind
from .storage import Storage, StorageError

logger = logging.getLogger(__name__)


class QueryError(Exception):
    """Raised when an aggregation cannot be executed or its rows decoded."""
    pass


# Event time as local wall-clock time, used by both filters and buckets
LOCAL_TIME = "datetime(time, 'localtime')"

# Grouping expression per view. Every ViewKind must have an entry.
GROUP_EXPRESSIONS: dict[ViewKind, str] = {
    ViewKind.PAGES: "url",
    ViewKind.REFERRERS: "ref",
    ViewKind.USERAGENTS: "useragent",
    ViewKind.HOURS: "strftime('%Y-%m-%d %H', time, 'localtime')",
    ViewKind.DAYS: "strftime('%Y-%m-%d', time, 'localtime')",
    ViewKind.WEEKS: "strftime('%Y-%W', time, 'localtime')",
    ViewKind.MONTHS: "strftime('%Y-%m', time, 'localtime')",
}

LIKE_ESCAPE = "\\"


def _contains_pattern(value: str) -> str:
    """LIKE pattern matching value literally anywhere in the column."""
    escaped = (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


class QueryEngine:
    """Answers aggregate questions over the views table."""

    def __init__(self, storage: Storage):
        self.storage = storage

    # =========================================================================
    # FILTERS
    # =========================================================================

    def _build_filter_sql(self, request: AggregationRequest) -> tuple[str, list]:
        """Build a WHERE clause from the request filters.

        Uses parameterized queries to prevent SQL injection.
        Returns (sql_string, params_list); both are empty when no
        filter is set.
        """
        clauses = []
        params = []

        # Date range, compared against local time, inclusive on both ends
        if request.from_ and request.to:
            clauses.append(f"{LOCAL_TIME} BETWEEN ? AND ?")
            params.extend([request.from_, request.to])
        elif request.from_:
            clauses.append(f"{LOCAL_TIME} >= ?")
            params.append(request.from_)
        elif request.to:
            clauses.append(f"{LOCAL_TIME} <= ?")
            params.append(request.to)

        # Substring filters
        if request.url:
            clauses.append(f"url LIKE ? ESCAPE '{LIKE_ESCAPE}'")
            params.append(_contains_pattern(request.url))
        if request.ref:
            clauses.append(f"ref LIKE ? ESCAPE '{LIKE_ESCAPE}'")
            params.append(_contains_pattern(request.ref))
        if request.ua:
            clauses.append(f"useragent LIKE ? ESCAPE '{LIKE_ESCAPE}'")
            params.append(_contains_pattern(request.ua))

        if not clauses:
            return "", []
        return "WHERE " + " AND ".join(clauses), params

    # =========================================================================
    # STATEMENTS
    # =========================================================================

    def _build_statement(self, view: ViewKind, filter_sql: str) -> str:
        """Combine the view's grouping expression with a filter clause."""
        try:
            group_by = GROUP_EXPRESSIONS[view]
        except (KeyError, TypeError):
            raise UnknownViewError(f"Unknown view: {view!r}") from None

        parts = [f"SELECT {group_by} AS \"key\", COUNT(*) AS \"count\" FROM views"]
        if filter_sql:
            parts.append(filter_sql)
        parts.append(f"GROUP BY {group_by}")
        return " ".join(parts)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def query(self, request: AggregationRequest) -> list[ResultRow]:
        """Run an aggregation and return one row per group.

        Row order is whatever the storage engine produces.

        Raises:
            UnknownViewError: If request.view is not a ViewKind
            QueryError: If the statement fails or a row cannot be decoded;
                no partial results are returned
        """
        filter_sql, params = self._build_filter_sql(request)
        sql = self._build_statement(request.view, filter_sql)
        logger.debug(f"Aggregating {request.view.value}: {sql}")

        try:
            rows = self.storage.query(sql, params)
        except StorageError as e:
            logger.error(f"Aggregation query for {request.view.value} failed: {e}")
            raise QueryError(f"Query failed: {e}") from e

        try:
            return [ResultRow(key=r["key"], count=r["count"]) for r in rows]
        except (KeyError, TypeError, ValidationError) as e:
            logger.error(f"Could not decode {request.view.value} rows: {e}")
            raise QueryError(f"Could not decode result row: {e}") from e

    def views(
        self,
        view: ViewKind | str,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        url: Optional[str] = None,
        ref: Optional[str] = None,
        ua: Optional[str] = None,
    ) -> list[ResultRow]:
        """Convenience wrapper building the AggregationRequest from arguments."""
        if not isinstance(view, ViewKind):
            view = ViewKind.parse(view)
        request = AggregationRequest(view=view, from_=from_, to=to, url=url, ref=ref, ua=ua)
        return self.query(request)
