"""Top-K selection by 24h volume."""

from __future__ import annotations

from typing import Sequence

import structlog

from predrank.errors import RankingError
from predrank.models import CanonicalMarket

log = structlog.get_logger(__name__)


def select_top_k(markets: Sequence[CanonicalMarket], k: int) -> list[CanonicalMarket]:
    """Return the k highest-volume markets, descending by volume_24h.

    sorted() is stable, so equal volumes keep their input order.
    """
    if k <= 0:
        raise RankingError(f"k must be positive, got {k}")
    ranked = sorted(markets, key=lambda m: m.volume_24h, reverse=True)[:k]
    for rank, m in enumerate(ranked, start=1):
        log.debug("ranked", rank=rank, market_id=m.market_id, volume_24h=m.volume_24h, title=m.title[:60])
    return ranked
