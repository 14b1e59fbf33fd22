"""Polymarket Gamma API client - active market listings."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from predrank.errors import UpstreamUnavailable

log = structlog.get_logger(__name__)

GAMMA_API_BASE = "https://gamma-api.polymarket.com"
DEFAULT_USER_AGENT = "predrank/0.1"

# Keys a wrapped response may use for the market array
_WRAPPER_KEYS = ("markets", "data")


def _markets_url(base_url: str | None) -> str:
    base = (base_url or GAMMA_API_BASE).rstrip("/")
    return base if base.endswith("/markets") else base + "/markets"


def _unwrap(data: Any) -> list[Any]:
    """Accept a bare JSON array or an object wrapping one."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in _WRAPPER_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    raise UpstreamUnavailable(f"unexpected payload shape: {type(data).__name__}")


def fetch_active_listings(
    base_url: str | None = None,
    limit: int = 200,
    timeout: float = 30.0,
    user_agent: str = DEFAULT_USER_AGENT,
    transport: httpx.BaseTransport | None = None,
) -> list[dict[str, Any]]:
    """Fetch active, open markets from the Gamma API as raw JSON objects.

    No retries: any transport error, timeout, non-2xx status, undecodable
    body or unknown payload shape raises UpstreamUnavailable.
    """
    url = _markets_url(base_url)
    params = {"active": "true", "closed": "false", "limit": limit}
    headers = {"Accept": "application/json", "User-Agent": user_agent}
    log.info("fetch_listings", url=url, limit=limit)
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            resp = client.get(url, params=params, headers=headers)
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPStatusError as e:
        raise UpstreamUnavailable(
            f"feed returned {e.response.status_code} {e.response.reason_phrase}"
        ) from e
    except httpx.HTTPError as e:
        raise UpstreamUnavailable(f"feed request failed: {e!r}") from e
    except ValueError as e:
        raise UpstreamUnavailable(f"feed returned invalid JSON: {e}") from e
    rows = _unwrap(data)
    log.info("fetched_listings", count=len(rows))
    return rows
