"""FastAPI read API and scheduled-run trigger."""

from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import structlog
from fastapi import FastAPI, Header, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predrank.api.schemas import (
    ErrorResponse,
    HealthResponse,
    MarketHistoryResponse,
    MarketsListResponse,
    StatsResponse,
    TopResponse,
    TrendingEventsResponse,
)
from predrank.config import Settings, get_settings
from predrank.errors import RunInProgress
from predrank.models import EventKind
from predrank.pipeline.runner import TopKRunner
from predrank.storage.db import get_connection, init_schema
from predrank.storage.events import recent_events
from predrank.storage.markets import current_top_k, get_market, list_markets, market_stats
from predrank.storage.snapshots import market_history

log = structlog.get_logger(__name__)

# Set by run_api() (or tests) before the app starts.
_config_profile: str | None = None
_config_dir: Path | None = None
_settings: Settings | None = None
_transport: httpx.BaseTransport | None = None


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = get_settings(_config_profile, _config_dir)
    return _settings


def _get_conn():
    # The trigger writes from this process; DuckDB requires the same config for
    # every connection to one file, so reads are opened read-write as well.
    return get_connection(_get_settings().db_path, read_only=False)


@asynccontextmanager
async def lifespan(app: FastAPI):
    conn = _get_conn()
    try:
        init_schema(conn)
    finally:
        conn.close()
    yield


app = FastAPI(title="predrank API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.get("/top", response_model=TopResponse)
def top() -> TopResponse:
    """Current top-K generation, highest 24h volume first."""
    conn = _get_conn()
    try:
        markets = current_top_k(conn)
        return TopResponse(
            markets=markets,
            count=len(markets),
            total_volume_24h=sum(m.volume_24h for m in markets),
            last_updated=markets[0].last_updated if markets else None,
        )
    finally:
        conn.close()


@app.get("/markets", response_model=MarketsListResponse)
def markets_list(
    category: str | None = Query(None, description="Filter by category (e.g. Politics)"),
    limit: int = Query(50, ge=1, le=500),
) -> MarketsListResponse:
    conn = _get_conn()
    try:
        markets = list_markets(conn, category=category, limit=limit)
        return MarketsListResponse(markets=markets, total=len(markets))
    finally:
        conn.close()


@app.get(
    "/markets/{market_id}/history",
    response_model=MarketHistoryResponse,
    responses={404: {"description": "Market not found", "model": ErrorResponse}},
)
def market_history_route(
    market_id: str,
    hours: float | None = Query(None, gt=0, description="Window in hours (default from config)"),
):
    """Snapshots of one market within the window, oldest first. 404 if the market is unknown."""
    window = hours if hours is not None else _get_settings().default_history_hours
    conn = _get_conn()
    try:
        market = get_market(conn, market_id)
        if market is None:
            return _error_json("not_found", f"Market not found: {market_id}")
        history = market_history(conn, market_id, window_hours=window)
        return MarketHistoryResponse(
            market=market,
            history=history,
            data_points=len(history),
            window_hours=window,
        )
    finally:
        conn.close()


@app.get("/trending-events", response_model=TrendingEventsResponse)
def trending_events(
    limit: int | None = Query(None, ge=1, le=500),
    kind: EventKind | None = Query(None),
) -> TrendingEventsResponse:
    conn = _get_conn()
    try:
        events = recent_events(conn, limit=limit or _get_settings().default_event_limit, kind=kind)
        return TrendingEventsResponse(events=events, count=len(events))
    finally:
        conn.close()


@app.get("/stats", response_model=StatsResponse)
def stats() -> StatsResponse:
    conn = _get_conn()
    try:
        return StatsResponse(**market_stats(conn))
    finally:
        conn.close()


@app.api_route(
    "/cron/update-top",
    methods=["GET", "POST"],
    responses={
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"description": "Run failed; body is the run report"},
        503: {"model": ErrorResponse},
    },
)
def trigger_run(authorization: str | None = Header(None)):
    """Run the ranking pipeline once. Authenticated with Authorization: Bearer <cron secret>."""
    settings = _get_settings()
    secret = settings.cron_secret
    if not secret:
        return _error_json("trigger_disabled", "No cron secret configured", status_code=503)
    if not secrets.compare_digest(authorization or "", f"Bearer {secret}"):
        return _error_json("unauthorized", "Unauthorized", status_code=401)
    conn = _get_conn()
    try:
        init_schema(conn)
        log.info("trigger_received")
        report = TopKRunner.from_settings(conn, settings, transport=_transport).run()
    except RunInProgress as e:
        return _error_json("run_in_progress", str(e), status_code=409)
    finally:
        conn.close()
    return JSONResponse(status_code=200 if report.ok else 500, content=report.model_dump(mode="json"))


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
    config_dir: Path | None = None,
) -> None:
    global _config_profile, _config_dir, _settings
    _config_profile = profile
    _config_dir = config_dir
    _settings = None
    import uvicorn
    uvicorn.run("predrank.api.main:app", host=host, port=port, reload=False)
