"""HTTP read API and trigger tests."""

import httpx
import pytest
from conftest import raw_record
from fastapi.testclient import TestClient

from predrank.api import main as api_main
from predrank.config import Settings

AUTH = {"Authorization": "Bearer s3cret"}


@pytest.fixture
def feed():
    """Mutable feed payload served by the mock transport."""
    state = {"status": 200, "rows": [raw_record("A", 100.0), raw_record("B", 90.0)]}

    def handler(request):
        return httpx.Response(state["status"], json=state["rows"])

    state["transport"] = httpx.MockTransport(handler)
    return state


@pytest.fixture
def client(tmp_path, monkeypatch, feed):
    monkeypatch.delenv("CRON_SECRET", raising=False)
    settings = Settings.from_dict(
        {"storage": {"db_path": str(tmp_path / "api.duckdb")}, "api": {"cron_secret": "s3cret"}}
    )
    monkeypatch.setattr(api_main, "_settings", settings)
    monkeypatch.setattr(api_main, "_transport", feed["transport"])
    with TestClient(api_main.app) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_trigger_requires_secret(client):
    assert client.post("/cron/update-top").status_code == 401
    resp = client.post("/cron/update-top", headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthorized"


def test_trigger_run_then_read(client, feed):
    resp = client.post("/cron/update-top", headers=AUTH)
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "DONE"
    assert [m["market_id"] for m in body["top"]] == ["A", "B"]

    top = client.get("/top").json()
    assert top["count"] == 2
    assert top["total_volume_24h"] == 190.0
    assert [m["market_id"] for m in top["markets"]] == ["A", "B"]

    feed["rows"] = [raw_record("C", 500.0), raw_record("A", 100.0)]
    assert client.get("/cron/update-top", headers=AUTH).status_code == 200

    events = client.get("/trending-events", params={"limit": 10}).json()
    kinds = sorted((e["kind"], e["market_id"]) for e in events["events"])
    assert kinds == [("ENTERED", "A"), ("ENTERED", "B"), ("ENTERED", "C"), ("EXITED", "B")]
    exited = client.get("/trending-events", params={"kind": "EXITED"}).json()
    assert exited["count"] == 1 and exited["events"][0]["old_rank"] == 2

    history = client.get("/markets/A/history", params={"hours": 24}).json()
    assert history["market"]["market_id"] == "A"
    assert history["data_points"] == 1
    assert history["history"][0]["rank"] == 1

    stats = client.get("/stats").json()
    assert stats["current_top_k"] == 2
    assert stats["total_snapshots"] == 2
    assert stats["top_market"]["market_id"] == "C"


def test_failed_run_returns_500_and_keeps_state(client, feed):
    assert client.post("/cron/update-top", headers=AUTH).status_code == 200
    feed["status"] = 502
    resp = client.post("/cron/update-top", headers=AUTH)
    assert resp.status_code == 500
    body = resp.json()
    assert body["state"] == "FAILED"
    assert body["failed_in"] == "FETCHING"
    assert client.get("/top").json()["count"] == 2


def test_history_unknown_market_404(client):
    resp = client.get("/markets/nope/history")
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_markets_by_category(client):
    client.post("/cron/update-top", headers=AUTH)
    assert client.get("/markets", params={"category": "Politics"}).json()["total"] == 2
    assert client.get("/markets", params={"category": "Crypto"}).json()["total"] == 0


def test_trigger_disabled_without_secret(client, monkeypatch):
    monkeypatch.setattr(api_main, "_settings", Settings.from_dict({"storage": api_main._settings.storage}))
    assert client.post("/cron/update-top", headers=AUTH).status_code == 503


def test_settings_loaded_from_config_dir(tmp_path, monkeypatch):
    (tmp_path / "default.toml").write_text("[ranking]\ntop_k = 7\n")
    monkeypatch.setattr(api_main, "_settings", None)
    monkeypatch.setattr(api_main, "_config_profile", None)
    monkeypatch.setattr(api_main, "_config_dir", tmp_path)
    assert api_main._get_settings().top_k == 7
