"""Canonical schema (Pydantic) - markets, snapshots, trending events, normalize results."""

from predrank.models.market import CanonicalMarket, Market, MarketSnapshot
from predrank.models.result import Accepted, NormalizedItem, NormalizeResult, Rejected, RejectReason
from predrank.models.trending import EventKind, TrendingEvent

__all__ = [
    "CanonicalMarket",
    "Market",
    "MarketSnapshot",
    "EventKind",
    "TrendingEvent",
    "Accepted",
    "Rejected",
    "RejectReason",
    "NormalizedItem",
    "NormalizeResult",
]
