"""Market snapshots - history of outgoing top-K generations."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Sequence

import duckdb
import structlog
from pydantic import ValidationError

from predrank.models import Market, MarketSnapshot

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

SNAPSHOT_COLUMNS = [
    "id",
    "market_id",
    "title",
    "yes_price",
    "no_price",
    "volume_24h",
    "total_volume",
    "rank",
    "captured_at",
]


def append_snapshot(conn: DuckDBPyConnection, snap: MarketSnapshot) -> None:
    """Append one market_snapshots row."""
    conn.execute(
        """
        INSERT INTO market_snapshots (market_id, title, yes_price, no_price, volume_24h, total_volume, rank, captured_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            snap.market_id,
            snap.title,
            snap.yes_price,
            snap.no_price,
            snap.volume_24h,
            snap.total_volume,
            snap.rank,
            snap.captured_at,
        ],
    )


def snapshot(conn: DuckDBPyConnection, old_top_k: Sequence[Market], now_ms: int | None = None) -> int:
    """Write one row per member of old_top_k, rank = 1-based position.

    A row that fails to write is logged and skipped. Returns rows written.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    written = 0
    for rank, m in enumerate(old_top_k, start=1):
        try:
            append_snapshot(
                conn,
                MarketSnapshot(
                    market_id=m.market_id,
                    title=m.title,
                    yes_price=m.yes_price,
                    no_price=m.no_price,
                    volume_24h=m.volume_24h,
                    total_volume=m.total_volume,
                    rank=rank,
                    captured_at=now_ms,
                ),
            )
            written += 1
        except (duckdb.Error, ValidationError) as e:
            log.warning("snapshot_row_skipped", market_id=m.market_id, rank=rank, stage="snapshot", error=str(e))
    log.info("snapshot_complete", written=written, members=len(old_top_k))
    return written


def market_history(
    conn: DuckDBPyConnection,
    market_id: str,
    window_hours: float = 96,
    now_ms: int | None = None,
) -> list[MarketSnapshot]:
    """Snapshots of market_id captured within the last window_hours, oldest first."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    since = now_ms - int(window_hours * 60 * 60 * 1000)
    rows = conn.execute(
        f"""
        SELECT {', '.join(SNAPSHOT_COLUMNS)} FROM market_snapshots
        WHERE market_id = ? AND captured_at >= ?
        ORDER BY captured_at ASC, id ASC
        """,
        [market_id, since],
    ).fetchall()
    return [MarketSnapshot(**dict(zip(SNAPSHOT_COLUMNS, r))) for r in rows]
