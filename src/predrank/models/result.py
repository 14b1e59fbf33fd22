"""Per-record normalization result: Accepted(market) or Rejected(reason)."""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field

from predrank.models.market import CanonicalMarket


class RejectReason(str, Enum):
    NOT_AN_OBJECT = "not_an_object"
    MISSING_ID = "missing_id"
    MISSING_TITLE = "missing_title"
    BAD_PRICES = "bad_prices"
    TOO_FEW_PRICES = "too_few_prices"
    NON_POSITIVE_VOLUME = "non_positive_volume"
    INACTIVE = "inactive"
    CLOSED = "closed"
    DUPLICATE_ID = "duplicate_id"


class Accepted(BaseModel):
    status: Literal["accepted"] = "accepted"
    market: CanonicalMarket


class Rejected(BaseModel):
    status: Literal["rejected"] = "rejected"
    market_id: str | None = None
    reason: RejectReason
    detail: str = ""


NormalizedItem = Union[Accepted, Rejected]


class NormalizeResult(BaseModel):
    """Outcome of normalizing one batch."""

    markets: list[CanonicalMarket] = Field(default_factory=list)
    rejected: list[Rejected] = Field(default_factory=list)

    @property
    def rejected_by_reason(self) -> dict[str, int]:
        return dict(Counter(r.reason.value for r in self.rejected))
