"""Replay determinism and verification against stored records."""

import pytest

from conftest import END, KICKOFF
from scorepool.errors import NotFoundError
from scorepool.ledger import Ledger
from scorepool.models import MarketStatus, Outcome
from scorepool.replay.engine import replay_market, stream_events, verify_market
from scorepool.storage.event_log import log_stats


def _settled_market(engine, fund, clock):
    market = engine.initialize("carl", "EPL-1", 100, KICKOFF, END, creator_fee_bps=100)
    for user, prediction in [("alice", "home"), ("bob", "home"), ("carol", "draw")]:
        fund(user, 100)
        engine.join(market.market_id, user, prediction)
    clock.set(END)
    engine.resolve(market.market_id, "carl", "home")
    engine.withdraw(market.market_id, "alice")
    return market


def test_replay_determinism(engine, fund, clock, temp_db):
    """Same log -> identical state (golden test)."""
    market = _settled_market(engine, fund, clock)
    first = replay_market(temp_db, market.market_id)
    second = replay_market(temp_db, market.market_id)
    assert first == second
    assert first.events_applied == 7
    assert first.total_pool == 300
    assert first.counts == {"home": 2, "draw": 1, "away": 0}
    assert first.status is MarketStatus.RESOLVED
    assert first.outcome is Outcome.HOME
    assert first.fees_paid == 6
    assert first.rewards_paid == 147
    assert first.withdrawn == {"alice"}
    assert first.escrow_balance == Ledger(temp_db).balance(market.escrow_account) == 147


def test_verify_market_agrees_with_store(engine, fund, clock, temp_db):
    market = _settled_market(engine, fund, clock)
    assert verify_market(temp_db, market.market_id) == []


def test_verify_market_reports_tampering(engine, fund, clock, temp_db):
    market = _settled_market(engine, fund, clock)
    temp_db.execute("UPDATE markets SET total_pool = 400 WHERE market_id = ?", [market.market_id])
    mismatches = verify_market(temp_db, market.market_id)
    assert mismatches == ["total_pool: stored 400, replayed 300"]


def test_events_stream_in_append_order(engine, fund, clock, temp_db):
    market = _settled_market(engine, fund, clock)
    types = [e.event_type.value for e in stream_events(temp_db, market.market_id)]
    assert types == [
        "MarketCreated",
        "PredictionMade",
        "PredictionMade",
        "PredictionMade",
        "MarketResolved",
        "FeesDistributed",
        "RewardClaimed",
    ]
    stats = log_stats(temp_db)
    assert stats["total_events"] == 7
    assert stats["by_type"]["PredictionMade"] == 3


def test_replay_unknown_market(temp_db):
    with pytest.raises(NotFoundError):
        replay_market(temp_db, "missing")


def test_verify_market_reports_escrow_drift(engine, fund, clock, temp_db):
    market = _settled_market(engine, fund, clock)
    temp_db.execute(
        "UPDATE balances SET amount = 100 WHERE account_id = ?", [market.escrow_account]
    )
    assert verify_market(temp_db, market.market_id) == ["escrow_balance: stored 100, replayed 147"]


def test_verify_market_reports_lost_fee_event(engine, fund, clock, temp_db):
    market = _settled_market(engine, fund, clock)
    temp_db.execute(
        "DELETE FROM settlement_events WHERE market_id = ? AND event_type = 'FeesDistributed'",
        [market.market_id],
    )
    assert verify_market(temp_db, market.market_id) == [
        "fees_distributed: stored True, replayed False",
        "escrow_balance: stored 147, replayed 153",
    ]
