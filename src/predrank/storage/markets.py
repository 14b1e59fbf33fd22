"""Market persistence - the current top-K generation and read access."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Sequence

import duckdb
import structlog

from predrank.errors import PersistenceFailure
from predrank.models import CanonicalMarket, Market

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

MARKET_COLUMNS = [
    "market_id",
    "title",
    "category",
    "description",
    "yes_price",
    "no_price",
    "volume_24h",
    "total_volume",
    "is_current_top_k",
    "rank",
    "last_updated",
    "end_date",
    "image",
]
_SELECT_MARKETS = f"SELECT {', '.join(MARKET_COLUMNS)} FROM markets"


def _row_to_market(row: tuple[Any, ...]) -> Market:
    return Market(**dict(zip(MARKET_COLUMNS, row)))


def upsert_market(
    conn: DuckDBPyConnection,
    market: CanonicalMarket,
    now_ms: int,
    current: bool = True,
    rank: int | None = None,
) -> None:
    """Update the row for market.market_id if present, else insert it."""
    values = [
        market.title,
        market.category,
        market.description,
        market.yes_price,
        market.no_price,
        market.volume_24h,
        market.total_volume,
        current,
        rank,
        now_ms,
        market.end_date,
        market.image,
    ]
    exists = conn.execute("SELECT 1 FROM markets WHERE market_id = ?", [market.market_id]).fetchone()
    if exists:
        conn.execute(
            """
            UPDATE markets SET
                title = ?, category = ?, description = ?, yes_price = ?, no_price = ?,
                volume_24h = ?, total_volume = ?, is_current_top_k = ?, rank = ?, last_updated = ?,
                end_date = ?, image = ?
            WHERE market_id = ?
            """,
            values + [market.market_id],
        )
    else:
        conn.execute(
            f"INSERT INTO markets ({', '.join(MARKET_COLUMNS)}) VALUES ({', '.join('?' for _ in MARKET_COLUMNS)})",
            [market.market_id] + values,
        )


def current_top_k(conn: DuckDBPyConnection) -> list[Market]:
    """All rows flagged current, in the rank order they were published with."""
    rows = conn.execute(
        f"{_SELECT_MARKETS} WHERE is_current_top_k ORDER BY rank, volume_24h DESC, market_id"
    ).fetchall()
    return [_row_to_market(r) for r in rows]


def replace_top_k(
    conn: DuckDBPyConnection,
    new_set: Sequence[CanonicalMarket],
    now_ms: int | None = None,
) -> int:
    """Unflag the current generation and upsert new_set as the flagged one.

    Runs in one transaction; on any datastore error the transaction is rolled
    back, the previous generation stays current and PersistenceFailure is raised.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    try:
        conn.begin()
        conn.execute("UPDATE markets SET is_current_top_k = FALSE, rank = NULL WHERE is_current_top_k")
        for rank, m in enumerate(new_set, start=1):
            upsert_market(conn, m, now_ms, current=True, rank=rank)
        conn.commit()
    except duckdb.Error as e:
        try:
            conn.rollback()
        except duckdb.Error:
            log.warning("rollback_failed", stage="replace_top_k")
        raise PersistenceFailure(f"top-K update failed: {e}") from e
    log.info("top_k_replaced", count=len(new_set))
    return len(new_set)


def get_market(conn: DuckDBPyConnection, market_id: str) -> Market | None:
    row = conn.execute(f"{_SELECT_MARKETS} WHERE market_id = ?", [market_id]).fetchone()
    return _row_to_market(row) if row else None


def list_markets(conn: DuckDBPyConnection, category: str | None = None, limit: int = 50) -> list[Market]:
    """Persisted markets (current or not), optionally by category, by 24h volume."""
    if category:
        rows = conn.execute(
            f"{_SELECT_MARKETS} WHERE category = ? ORDER BY volume_24h DESC LIMIT ?",
            [category, limit],
        ).fetchall()
    else:
        rows = conn.execute(f"{_SELECT_MARKETS} ORDER BY volume_24h DESC LIMIT ?", [limit]).fetchall()
    return [_row_to_market(r) for r in rows]


def market_stats(conn: DuckDBPyConnection, now_ms: int | None = None) -> dict[str, Any]:
    """Summary counts across markets, snapshots and trending events."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    current_count, total_volume_24h = conn.execute(
        "SELECT COUNT(*), COALESCE(SUM(volume_24h), 0) FROM markets WHERE is_current_top_k"
    ).fetchone()
    total_markets = conn.execute("SELECT COUNT(*) FROM markets").fetchone()[0]
    total_snapshots, oldest_snapshot = conn.execute(
        "SELECT COUNT(*), MIN(captured_at) FROM market_snapshots"
    ).fetchone()
    recent_events = conn.execute(
        "SELECT COUNT(*) FROM trending_events WHERE created_at >= ?",
        [now_ms - 24 * 60 * 60 * 1000],
    ).fetchone()[0]
    top = current_top_k(conn)
    top_market = top[0] if top else None
    return {
        "current_top_k": current_count,
        "total_markets": total_markets,
        "total_snapshots": total_snapshots,
        "recent_events": recent_events,
        "data_start": oldest_snapshot,
        "total_volume_24h": float(total_volume_24h),
        "top_market": top_market.model_dump() if top_market else None,
        "last_updated": top_market.last_updated if top_market else None,
    }
