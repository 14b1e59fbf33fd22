"""Age-based deletion of snapshots, stale markets and trending events."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class SweepCounts(BaseModel):
    snapshots: int = 0
    markets: int = 0
    events: int = 0


def _delete_where(conn: DuckDBPyConnection, table: str, where: str, params: list) -> int:
    count = conn.execute(f"SELECT COUNT(*) FROM {table} WHERE {where}", params).fetchone()[0]
    if count:
        conn.execute(f"DELETE FROM {table} WHERE {where}", params)
    return count


def sweep(
    conn: DuckDBPyConnection,
    now_ms: int | None = None,
    snapshot_days: float = 30,
    stale_market_hours: float = 24,
    event_days: float = 60,
) -> SweepCounts:
    """Delete rows past their horizon. Current top-K markets are never deleted."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    counts = SweepCounts(
        snapshots=_delete_where(
            conn, "market_snapshots", "captured_at < ?", [now_ms - int(snapshot_days * DAY_MS)]
        ),
        markets=_delete_where(
            conn,
            "markets",
            "NOT is_current_top_k AND last_updated < ?",
            [now_ms - int(stale_market_hours * HOUR_MS)],
        ),
        events=_delete_where(conn, "trending_events", "created_at < ?", [now_ms - int(event_days * DAY_MS)]),
    )
    log.info("sweep_complete", **counts.model_dump())
    return counts
