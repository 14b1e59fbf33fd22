"""Trending event log - append and query."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import duckdb
import structlog

from predrank.models import EventKind, TrendingEvent

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

EVENT_COLUMNS = ["id", "market_id", "market_title", "kind", "new_rank", "old_rank", "volume_24h", "created_at"]


def append_event(conn: DuckDBPyConnection, event: TrendingEvent) -> None:
    conn.execute(
        """
        INSERT INTO trending_events (market_id, market_title, kind, new_rank, old_rank, volume_24h, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            event.market_id,
            event.market_title,
            event.kind.value,
            event.new_rank,
            event.old_rank,
            event.volume_24h,
            event.created_at,
        ],
    )


def append_events(conn: DuckDBPyConnection, events: Sequence[TrendingEvent]) -> int:
    """Append events one by one; a failed row is logged and skipped. Returns rows written."""
    written = 0
    for event in events:
        try:
            append_event(conn, event)
            written += 1
        except duckdb.Error as e:
            log.warning(
                "event_row_skipped",
                market_id=event.market_id,
                kind=event.kind.value,
                stage="diff",
                error=str(e),
            )
    return written


def recent_events(
    conn: DuckDBPyConnection,
    limit: int = 20,
    kind: EventKind | None = None,
) -> list[TrendingEvent]:
    """Most recent events first."""
    if kind is not None:
        rows = conn.execute(
            f"SELECT {', '.join(EVENT_COLUMNS)} FROM trending_events WHERE kind = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            [kind.value, limit],
        ).fetchall()
    else:
        rows = conn.execute(
            f"SELECT {', '.join(EVENT_COLUMNS)} FROM trending_events ORDER BY created_at DESC, id DESC LIMIT ?",
            [limit],
        ).fetchall()
    return [TrendingEvent(**dict(zip(EVENT_COLUMNS, r))) for r in rows]
