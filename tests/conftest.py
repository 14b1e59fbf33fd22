"""Shared fixtures: temporary DuckDB and market builders."""

import tempfile
from pathlib import Path

import pytest
import structlog

from predrank.models import CanonicalMarket
from predrank.storage.db import get_connection, init_schema

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS
T0 = 1_760_000_000_000  # fixed generation timestamp (ms)


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    for p in Path(tmp).iterdir():
        p.unlink()
    Path(tmp).rmdir()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


def canonical(market_id: str, volume_24h: float, **kw) -> CanonicalMarket:
    fields = {
        "market_id": market_id,
        "title": kw.pop("title", f"Market {market_id}?"),
        "yes_price": 0.6,
        "no_price": 0.4,
        "volume_24h": volume_24h,
        "total_volume": volume_24h * 10,
    }
    fields.update(kw)
    return CanonicalMarket(**fields)


def raw_record(market_id: str, volume_24h: float | None = None, **kw) -> dict:
    raw = {
        "id": market_id,
        "question": f"Market {market_id}?",
        "category": "Politics",
        "outcomePrices": '["0.6", "0.4"]',
        "volume": "12345.5",
        "active": True,
        "closed": False,
        "endDate": "2026-12-31T00:00:00Z",
    }
    if volume_24h is not None:
        raw["volume24hr"] = volume_24h
    raw.update(kw)
    return raw
