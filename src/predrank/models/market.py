"""CanonicalMarket, Market, MarketSnapshot - canonical and persisted market entities."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CanonicalMarket(BaseModel):
    """Validated market built fresh from one feed record. Immutable."""

    model_config = ConfigDict(frozen=True)

    market_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    category: str = "General"
    description: str | None = None
    yes_price: float
    no_price: float
    volume_24h: float = Field(..., gt=0)
    total_volume: float = Field(0.0, ge=0)
    end_date: str | None = None  # provider ISO string
    image: str | None = None


class Market(BaseModel):
    """Persisted current-state row, one per market_id."""

    market_id: str
    title: str
    category: str | None = None
    description: str | None = None
    yes_price: float | None = None
    no_price: float | None = None
    volume_24h: float = 0.0
    total_volume: float = 0.0
    is_current_top_k: bool = False
    rank: int | None = Field(None, ge=1)  # position in the current generation
    last_updated: int  # ms epoch
    end_date: str | None = None
    image: str | None = None


class MarketSnapshot(BaseModel):
    """Point-in-time copy of a top-K member, written just before its generation is replaced."""

    id: int | None = None
    market_id: str
    title: str
    yes_price: float | None = None
    no_price: float | None = None
    volume_24h: float = 0.0
    total_volume: float = 0.0
    rank: int = Field(..., ge=1)
    captured_at: int  # ms epoch
