"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS snapshot_seq START 1;
CREATE SEQUENCE IF NOT EXISTS trending_seq START 1;

-- Current state, one row per market. is_current_top_k and rank describe the live generation
CREATE TABLE IF NOT EXISTS markets (
    market_id       VARCHAR PRIMARY KEY,
    title           VARCHAR NOT NULL,
    category        VARCHAR,
    description     VARCHAR,
    yes_price       DOUBLE,
    no_price        DOUBLE,
    volume_24h      DOUBLE NOT NULL,
    total_volume    DOUBLE NOT NULL,
    is_current_top_k BOOLEAN NOT NULL DEFAULT FALSE,
    rank            INTEGER,
    last_updated    BIGINT NOT NULL,
    end_date        VARCHAR,
    image           VARCHAR
);

-- Outgoing top-K generations (append-only)
CREATE TABLE IF NOT EXISTS market_snapshots (
    id              BIGINT PRIMARY KEY DEFAULT nextval('snapshot_seq'),
    market_id       VARCHAR NOT NULL,
    title           VARCHAR NOT NULL,
    yes_price       DOUBLE,
    no_price        DOUBLE,
    volume_24h      DOUBLE NOT NULL,
    total_volume    DOUBLE NOT NULL,
    rank            INTEGER NOT NULL,
    captured_at     BIGINT NOT NULL
);

-- Top-K membership changes (append-only)
CREATE TABLE IF NOT EXISTS trending_events (
    id              BIGINT PRIMARY KEY DEFAULT nextval('trending_seq'),
    market_id       VARCHAR NOT NULL,
    market_title    VARCHAR NOT NULL,
    kind            VARCHAR NOT NULL,
    new_rank        INTEGER,
    old_rank        INTEGER,
    volume_24h      DOUBLE NOT NULL,
    created_at      BIGINT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snapshots_market_time ON market_snapshots (market_id, captured_at);
CREATE INDEX IF NOT EXISTS idx_trending_created ON trending_events (created_at)
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    Use read_only=True when another process may be writing (e.g. a scheduled run)
    so the API can read while the run holds the write lock."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
