"""Gamma market JSON -> CanonicalMarket, rejecting malformed records one at a time."""

from __future__ import annotations

import json
import math
from typing import Any, Iterable

import structlog

from predrank.errors import MalformedRecord
from predrank.models import (
    Accepted,
    CanonicalMarket,
    NormalizedItem,
    NormalizeResult,
    Rejected,
    RejectReason,
)

log = structlog.get_logger(__name__)

DEFAULT_CATEGORY = "General"


def _number(value: Any) -> float | None:
    """Finite float or None. Bools are not numbers here."""
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def parse_outcome_prices(value: Any) -> tuple[float, float]:
    """Return (yes, no) from outcomePrices, given as a list or a JSON-encoded string."""
    if isinstance(value, list):
        prices = value
    elif isinstance(value, str):
        try:
            prices = json.loads(value or "[]")
        except json.JSONDecodeError as e:
            raise MalformedRecord(RejectReason.BAD_PRICES, f"outcomePrices not JSON: {e}") from e
        if not isinstance(prices, list):
            raise MalformedRecord(RejectReason.BAD_PRICES, "outcomePrices is not a list")
    elif value is None:
        prices = []
    else:
        raise MalformedRecord(RejectReason.BAD_PRICES, f"outcomePrices has type {type(value).__name__}")
    if len(prices) < 2:
        raise MalformedRecord(RejectReason.TOO_FEW_PRICES, f"{len(prices)} price entries")
    yes, no = _number(prices[0]), _number(prices[1])
    if yes is None or no is None:
        raise MalformedRecord(RejectReason.BAD_PRICES, f"non-numeric prices {prices[:2]!r}")
    return yes, no


def derive_volume_24h(raw: dict[str, Any]) -> float:
    """Direct volume24hr when numeric and non-zero, else volume24hrClob + volume24hrAmm."""
    direct = _number(raw.get("volume24hr"))
    if direct:
        return direct
    clob = _number(raw.get("volume24hrClob")) or 0.0
    amm = _number(raw.get("volume24hrAmm")) or 0.0
    return clob + amm


def _total_volume(raw: dict[str, Any]) -> float:
    total = _number(raw.get("volume"))
    if total is None:
        total = _number(raw.get("volumeNum"))
    return max(total or 0.0, 0.0)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_market(raw: Any) -> CanonicalMarket:
    """Build a CanonicalMarket or raise MalformedRecord with the first failing check."""
    if not isinstance(raw, dict):
        raise MalformedRecord(RejectReason.NOT_AN_OBJECT, f"record has type {type(raw).__name__}")
    market_id = _optional_str(raw.get("id"))
    if not market_id:
        raise MalformedRecord(RejectReason.MISSING_ID)
    title = _optional_str(raw.get("question"))
    if not title:
        raise MalformedRecord(RejectReason.MISSING_TITLE)
    yes, no = parse_outcome_prices(raw.get("outcomePrices"))
    volume_24h = derive_volume_24h(raw)
    if volume_24h <= 0:
        raise MalformedRecord(RejectReason.NON_POSITIVE_VOLUME, f"volume_24h={volume_24h}")
    if raw.get("active") is not True:
        raise MalformedRecord(RejectReason.INACTIVE)
    if raw.get("closed"):
        raise MalformedRecord(RejectReason.CLOSED)
    return CanonicalMarket(
        market_id=market_id,
        title=title,
        category=_optional_str(raw.get("category")) or DEFAULT_CATEGORY,
        description=_optional_str(raw.get("description")),
        yes_price=yes,
        no_price=no,
        volume_24h=volume_24h,
        total_volume=_total_volume(raw),
        end_date=_optional_str(raw.get("endDate")),
        image=_optional_str(raw.get("image")),
    )


def normalize_record(raw: Any) -> NormalizedItem:
    """Normalize one record. Never raises for bad data."""
    try:
        return Accepted(market=parse_market(raw))
    except MalformedRecord as e:
        market_id = _optional_str(raw.get("id")) if isinstance(raw, dict) else None
        return Rejected(market_id=market_id, reason=RejectReason(e.reason), detail=str(e))


def normalize(records: Iterable[Any]) -> NormalizeResult:
    """Normalize a batch, dropping malformed records. Output order follows input order.

    A market_id seen again after it was accepted is rejected as a duplicate;
    the first occurrence wins.
    """
    result = NormalizeResult()
    seen: set[str] = set()
    for raw in records:
        item = normalize_record(raw)
        if isinstance(item, Accepted) and item.market.market_id in seen:
            item = Rejected(market_id=item.market.market_id, reason=RejectReason.DUPLICATE_ID)
        if isinstance(item, Accepted):
            seen.add(item.market.market_id)
            result.markets.append(item.market)
        else:
            log.debug("record_rejected", market_id=item.market_id, reason=item.reason.value, detail=item.detail)
            result.rejected.append(item)
    log.info(
        "normalized",
        valid=len(result.markets),
        rejected=len(result.rejected),
        by_reason=result.rejected_by_reason,
    )
    return result
