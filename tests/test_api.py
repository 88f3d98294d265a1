"""HTTP API: settlement operations end to end and error mapping."""

import pytest
from fastapi.testclient import TestClient

from conftest import END, KICKOFF, NOW
from scorepool.api import main as api_main
from scorepool.config import Settings
from scorepool.ledger import FixedClock


@pytest.fixture
def api_clock(monkeypatch):
    clock = FixedClock(NOW)
    monkeypatch.setattr(api_main, "_clock", clock)
    return clock


@pytest.fixture
def client(tmp_path, monkeypatch, api_clock):
    settings = Settings(storage={"db_path": str(tmp_path / "api.duckdb")})
    monkeypatch.setattr(api_main, "get_settings", lambda profile=None: settings)
    with TestClient(api_main.app) as c:
        yield c


def _create_market(client):
    r = client.post(
        "/markets",
        json={
            "creator": "carl",
            "match_id": "EPL-2024-123",
            "entry_fee": 100,
            "kickoff_time": KICKOFF,
            "end_time": END,
        },
    )
    assert r.status_code == 201, r.text
    return r.json()["market_id"]


def _join_three(client, market_id):
    for user, prediction in [("alice", "home"), ("bob", "home"), ("carol", "draw")]:
        assert client.post(f"/ledger/{user}/deposit", json={"amount": 1000}).status_code == 200
        r = client.post(f"/markets/{market_id}/join", json={"user_id": user, "prediction": prediction})
        assert r.status_code == 201, r.text


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_full_settlement_flow(client, api_clock):
    market_id = _create_market(client)
    _join_three(client, market_id)

    market = client.get(f"/markets/{market_id}").json()
    assert market["status"] == "open"
    assert market["total_pool"] == 300
    assert market["fees"] == {"creator_fee_bps": 100, "platform_fee_bps": 100}

    api_clock.set(END)
    r = client.post(f"/markets/{market_id}/resolve", json={"resolver": "carl", "outcome": "home"})
    assert r.status_code == 200, r.text
    assert r.json()["outcome"] == "home"
    assert r.json()["fees_distributed"] is True

    r = client.post(f"/markets/{market_id}/withdraw", json={"user_id": "alice"})
    assert r.status_code == 200
    assert r.json() == {"market_id": market_id, "user_id": "alice", "reward": 147}
    assert client.get("/ledger/alice").json()["balance"] == 1047
    assert client.get("/ledger/carl").json()["balance"] == 3

    participant = client.get(f"/markets/{market_id}/participants/alice").json()
    assert participant["has_withdrawn"] is True
    assert participant["reward"] == 147

    audit = client.get(f"/markets/{market_id}/audit").json()
    assert audit["ok"] is True
    assert audit["escrow_balance"] == 147
    assert audit["unclaimed_rewards"] == 147


def test_errors_use_settlement_codes(client, api_clock):
    market_id = _create_market(client)
    _join_three(client, market_id)

    r = client.post(f"/markets/{market_id}/join", json={"user_id": "alice", "prediction": "away"})
    assert r.status_code == 409
    assert r.json()["code"] == "duplicate"

    r = client.post(f"/markets/{market_id}/resolve", json={"resolver": "carl", "outcome": "home"})
    assert r.status_code == 409
    assert r.json()["code"] == "market_not_ended"

    api_clock.set(END)
    r = client.post(f"/markets/{market_id}/resolve", json={"resolver": "alice", "outcome": "home"})
    assert r.status_code == 403
    assert r.json()["code"] == "unauthorized_resolver"

    client.post(f"/markets/{market_id}/resolve", json={"resolver": "carl", "outcome": "home"})
    r = client.post(f"/markets/{market_id}/resolve", json={"resolver": "carl", "outcome": "draw"})
    assert r.status_code == 409
    assert r.json()["code"] == "invalid_state"

    r = client.post(f"/markets/{market_id}/withdraw", json={"user_id": "carol"})
    assert r.status_code == 403
    assert r.json()["code"] == "not_a_winner"

    client.post(f"/markets/{market_id}/withdraw", json={"user_id": "bob"})
    r = client.post(f"/markets/{market_id}/withdraw", json={"user_id": "bob"})
    assert r.status_code == 409
    assert r.json()["code"] == "already_withdrawn"


def test_unknown_records_are_404(client):
    r = client.get("/markets/missing")
    assert r.status_code == 404
    assert r.json() == {"detail": "market missing not found", "code": "not_found"}
    assert client.get("/users/nobody/stats").status_code == 404


def test_invalid_market_is_422(client):
    r = client.post(
        "/markets",
        json={"creator": "carl", "match_id": "", "entry_fee": 100, "kickoff_time": KICKOFF, "end_time": END},
    )
    assert r.status_code == 422
    assert r.json()["code"] == "validation_error"


def test_insufficient_funds_is_402(client):
    market_id = _create_market(client)
    r = client.post(f"/markets/{market_id}/join", json={"user_id": "pauper", "prediction": "home"})
    assert r.status_code == 402
    assert r.json()["code"] == "insufficient_funds"
