"""
HTTP routes for viewstats.

- /view records a page view (fire-and-forget)
- /stats answers aggregation requests as JSON or CSV
- /script.js serves the tracking snippet that calls /view
"""

import csv
import logging
from io import StringIO

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response
from fastapi.responses import StreamingResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from ..config import AnalyticsConfig, verify_passkey
from ..core.engine import QueryEngine, QueryError
from ..core.models import AggregationRequest, ResultRow, UnknownViewError, ViewKind
from ..core.recorder import EventRecorder

logger = logging.getLogger(__name__)

STATS_FORMATS = ("json", "csv")

basic_auth = HTTPBasic(auto_error=False)


def tracking_js(base_url: str) -> str:
    """JavaScript that reports the current page (and SPA navigations) to /view."""
    return f'''(function(){{
  var d=document,w=window,h=history,l=location,e=encodeURIComponent;
  var endpoint="{base_url}/view";
  var lastUrl="",timer;

  function track(){{
    clearTimeout(timer);
    timer=setTimeout(function(){{
      if(l.href===lastUrl)return;
      lastUrl=l.href;
      new Image().src=endpoint+"?url="+e(l.href)+"&ref="+e(d.referrer||"");
    }},50);
  }}

  track();

  var push=h.pushState;
  h.pushState=function(){{push.apply(h,arguments);track()}};
  var replace=h.replaceState;
  h.replaceState=function(){{replace.apply(h,arguments);track()}};
  w.addEventListener("popstate",track);
}})();
'''


def _rows_to_csv(rows: list[ResultRow]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["key", "count"])
    for row in rows:
        writer.writerow([row.key, row.count])
    return output.getvalue()


def create_stats_router(
    recorder: EventRecorder,
    engine: QueryEngine,
    config: AnalyticsConfig,
) -> APIRouter:
    """Create the tracking and stats router.

    Args:
        recorder: Recorder writing to the shared storage handle
        engine: Query engine reading from the same handle
        config: Analytics configuration (passkey, DNT policy, base URL)
    """
    router = APIRouter(tags=["viewstats"])

    def _check_auth(credentials: HTTPBasicCredentials | None = Depends(basic_auth)) -> None:
        """Require the configured passkey as the Basic auth password."""
        if not config.has_auth:
            return
        if credentials is None or not verify_passkey(config.passkey, credentials.password):
            raise HTTPException(
                status_code=401,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Basic"},
            )

    @router.get("/view", status_code=204)
    def track_view(
        url: str | None = None,
        ref: str | None = None,
        referer: str | None = Header(None),
        user_agent: str | None = Header(None),
        dnt: str | None = Header(None),
    ):
        """Record a page view. The page URL defaults to the Referer header."""
        if config.respect_dnt and dnt == "1":
            return Response(status_code=204)
        recorder.record(url or referer, ref, user_agent)
        return Response(status_code=204)

    @router.get("/stats", dependencies=[Depends(_check_auth)])
    def stats(
        view: str = "pages",
        from_: str | None = Query(None, alias="from"),
        to: str | None = None,
        url: str | None = None,
        ref: str | None = None,
        ua: str | None = None,
        output: str = Query("json", alias="format"),
    ):
        """Aggregate recorded views."""
        try:
            view_kind = ViewKind.parse(view)
        except UnknownViewError:
            raise HTTPException(status_code=400, detail=f"Unknown view: {view}") from None

        output_format = output.lower()
        if output_format not in STATS_FORMATS:
            raise HTTPException(status_code=400, detail=f"Unknown format: {output}")

        request = AggregationRequest(view=view_kind, from_=from_, to=to, url=url, ref=ref, ua=ua)
        try:
            rows = engine.query(request)
        except QueryError:
            raise HTTPException(status_code=500, detail="Query failed") from None

        if output_format == "csv":
            return StreamingResponse(
                iter([_rows_to_csv(rows)]),
                media_type="text/csv",
                headers={"Content-Disposition": f"attachment; filename={view_kind.value}.csv"},
            )
        return [row.model_dump() for row in rows]

    @router.get("/script.js")
    def script():
        """Serve the tracking script."""
        return Response(
            content=tracking_js(config.base_url),
            media_type="application/javascript",
            headers={"Cache-Control": "public, max-age=3600"},
        )

    return router
