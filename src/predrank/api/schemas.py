"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from predrank.models import Market, MarketSnapshot, TrendingEvent


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_found, unauthorized")


# --- Markets ---
class TopResponse(BaseModel):
    markets: list[Market]
    count: int
    total_volume_24h: float
    last_updated: int | None = None
    sorted_by: str = "volume_24h"


class MarketsListResponse(BaseModel):
    markets: list[Market]
    total: int


class MarketHistoryResponse(BaseModel):
    market: Market
    history: list[MarketSnapshot]
    data_points: int
    window_hours: float


# --- Trending events ---
class TrendingEventsResponse(BaseModel):
    events: list[TrendingEvent]
    count: int


# --- Stats ---
class StatsResponse(BaseModel):
    current_top_k: int
    total_markets: int
    total_snapshots: int
    recent_events: int = Field(..., description="Trending events in the last 24h")
    data_start: int | None = None
    total_volume_24h: float
    top_market: dict[str, Any] | None = None
    last_updated: int | None = None
