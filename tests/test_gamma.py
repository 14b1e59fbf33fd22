"""Gamma source client tests (httpx.MockTransport, no network)."""

import httpx
import pytest
from conftest import raw_record

from predrank.errors import UpstreamUnavailable
from predrank.ingestion.gamma import fetch_active_listings


def _transport(handler):
    return httpx.MockTransport(handler)


def test_fetch_sends_filters_and_returns_array():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        seen["params"] = dict(request.url.params)
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, json=[raw_record("1", 10.0), raw_record("2", 20.0)])

    rows = fetch_active_listings(
        base_url="https://feed.test", limit=50, user_agent="tester/1", transport=_transport(handler)
    )
    assert [r["id"] for r in rows] == ["1", "2"]
    assert seen["url"] == "https://feed.test/markets"
    assert seen["params"] == {"active": "true", "closed": "false", "limit": "50"}
    assert seen["ua"] == "tester/1"


@pytest.mark.parametrize("key", ["markets", "data"])
def test_fetch_unwraps_object_payload(key):
    def handler(request):
        return httpx.Response(200, json={key: [raw_record("1", 10.0)], "count": 1})

    rows = fetch_active_listings(base_url="https://feed.test/markets", transport=_transport(handler))
    assert len(rows) == 1


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(429, text="slow down"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"error": "nope"}),
        httpx.Response(200, json="just a string"),
    ],
)
def test_fetch_failures_raise_upstream_unavailable(response):
    with pytest.raises(UpstreamUnavailable):
        fetch_active_listings(base_url="https://feed.test", transport=_transport(lambda request: response))


def test_connection_error_raises_upstream_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        fetch_active_listings(base_url="https://feed.test", transport=_transport(handler))


def test_timeout_raises_upstream_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamUnavailable):
        fetch_active_listings(base_url="https://feed.test", timeout=0.1, transport=_transport(handler))
