"""Stats aggregator: streak fold and per-market folding."""

import pytest

from conftest import END, KICKOFF, NOW
from scorepool.errors import CalculationError, NotFoundError, StateError
from scorepool.models import UserStats
from scorepool.settlement.arithmetic import U64_MAX
from scorepool.stats import StatsAggregator, apply_settlement


def test_streaks_follow_runs_of_wins_and_losses():
    stats = UserStats(user_id="alice")
    streaks = []
    for won in [True, True, False, False, False, True, True, True, False]:
        stats = apply_settlement(stats, won, wagered=10, won_amount=25 if won else 0, now=NOW)
        streaks.append(stats.current_streak)
    assert streaks == [1, 2, -1, -2, -3, 1, 2, 3, -1]
    assert stats.best_streak == 3
    assert stats.wins == 5
    assert stats.losses == 4
    assert stats.total_markets == 9
    assert stats.total_wagered == 90
    assert stats.total_won == 125
    assert stats.last_updated == NOW


def test_losses_only_never_raise_best_streak():
    stats = UserStats(user_id="bob")
    for _ in range(3):
        stats = apply_settlement(stats, False, wagered=5, won_amount=0, now=NOW)
    assert stats.current_streak == -3
    assert stats.best_streak == 0


def test_apply_settlement_does_not_mutate_input():
    stats = UserStats(user_id="alice")
    apply_settlement(stats, True, wagered=1, won_amount=1, now=NOW)
    assert stats.total_markets == 0


def test_overflowing_totals_are_rejected():
    stats = UserStats(user_id="whale", total_wagered=U64_MAX)
    with pytest.raises(CalculationError):
        apply_settlement(stats, False, wagered=1, won_amount=0, now=NOW)


def test_record_settlement_persists(temp_db):
    agg = StatsAggregator(temp_db)
    agg.record_settlement("alice", True, wagered=100, won_amount=147, now=NOW)
    agg.record_settlement("alice", False, wagered=100, won_amount=0, now=NOW + 1)
    stats = agg.get("alice")
    assert (stats.wins, stats.losses, stats.current_streak, stats.best_streak) == (1, 1, -1, 1)
    assert stats.total_won == 147
    with pytest.raises(NotFoundError):
        agg.get("nobody")


def test_fold_market_records_each_participant_once(engine, fund, clock, temp_db):
    market = engine.initialize("carl", "EPL-1", 100, KICKOFF, END, creator_fee_bps=100)
    for user, prediction in [("alice", "home"), ("bob", "home"), ("carol", "draw")]:
        fund(user, 100)
        engine.join(market.market_id, user, prediction)
    agg = StatsAggregator(temp_db)
    with pytest.raises(StateError):
        agg.fold_market(market.market_id, now=NOW)

    clock.set(END)
    engine.resolve(market.market_id, "carl", "home")
    assert agg.fold_market(market.market_id, now=END) == 3
    assert agg.fold_market(market.market_id, now=END + 1) == 0

    alice = agg.get("alice")
    assert (alice.wins, alice.total_won, alice.total_wagered) == (1, 147, 100)
    carol = agg.get("carol")
    assert (carol.losses, carol.total_won, carol.current_streak) == (1, 0, -1)


def test_fold_unknown_market(temp_db):
    with pytest.raises(NotFoundError):
        StatsAggregator(temp_db).fold_market("missing", now=NOW)
