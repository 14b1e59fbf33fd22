"""Top-K membership diff: ENTERED / EXITED events between two generations."""

from __future__ import annotations

import time
from typing import Sequence

from predrank.models import CanonicalMarket, EventKind, Market, TrendingEvent


def detect(
    old_top_k: Sequence[Market],
    new_top_k: Sequence[CanonicalMarket],
    now_ms: int | None = None,
) -> list[TrendingEvent]:
    """Diff two generations by market_id.

    old_top_k must be read before the state store is updated. Markets in both
    sets produce nothing, whatever their rank movement. A market missing from
    the feed entirely is treated the same as one that fell out of the ranking.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    old_ids = {m.market_id for m in old_top_k}
    new_ids = {m.market_id for m in new_top_k}
    events: list[TrendingEvent] = []
    for rank, m in enumerate(new_top_k, start=1):
        if m.market_id not in old_ids:
            events.append(
                TrendingEvent(
                    market_id=m.market_id,
                    market_title=m.title,
                    kind=EventKind.ENTERED,
                    new_rank=rank,
                    volume_24h=m.volume_24h,
                    created_at=now_ms,
                )
            )
    for rank, m in enumerate(old_top_k, start=1):
        if m.market_id not in new_ids:
            events.append(
                TrendingEvent(
                    market_id=m.market_id,
                    market_title=m.title,
                    kind=EventKind.EXITED,
                    old_rank=rank,
                    volume_24h=m.volume_24h,
                    created_at=now_ms,
                )
            )
    return events
