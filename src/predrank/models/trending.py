"""TrendingEvent - top-K membership change."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    ENTERED = "ENTERED"
    EXITED = "EXITED"


class TrendingEvent(BaseModel):
    """A market crossing the top-K boundary between two consecutive generations."""

    id: int | None = None
    market_id: str
    market_title: str
    kind: EventKind
    new_rank: int | None = Field(None, ge=1)  # set for ENTERED
    old_rank: int | None = Field(None, ge=1)  # set for EXITED
    volume_24h: float = 0.0
    created_at: int  # ms epoch
