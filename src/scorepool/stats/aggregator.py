"""Stats aggregator - folds settlement results into per-user win/loss and streak totals."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from scorepool.errors import NotFoundError, StateError
from scorepool.models import MarketStatus, UserStats
from scorepool.settlement.arithmetic import U32_MAX, checked_add
from scorepool.settlement.fees import compute_reward
from scorepool.storage.db import transaction
from scorepool.storage.markets import get_market, list_participants
from scorepool.storage.stats import get_user_stats, is_folded, mark_folded, save_user_stats

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


def apply_settlement(stats: UserStats, won: bool, wagered: int, won_amount: int, now: int) -> UserStats:
    """Pure fold of one settlement into a copy of stats.

    current_streak counts consecutive wins upward and consecutive losses downward;
    a result of the other kind restarts it at +1 / -1.
    """
    out = stats.model_copy()
    out.total_markets = checked_add(out.total_markets, 1, limit=U32_MAX)
    out.total_wagered = checked_add(out.total_wagered, wagered)
    if won:
        out.wins = checked_add(out.wins, 1, limit=U32_MAX)
        out.total_won = checked_add(out.total_won, won_amount)
        out.current_streak = out.current_streak + 1 if out.current_streak >= 0 else 1
        out.best_streak = max(out.best_streak, out.current_streak)
    else:
        out.losses = checked_add(out.losses, 1, limit=U32_MAX)
        out.current_streak = out.current_streak - 1 if out.current_streak <= 0 else -1
    out.last_updated = now
    return out


class StatsAggregator:
    def __init__(self, conn: DuckDBPyConnection):
        self.conn = conn

    def get(self, user_id: str) -> UserStats:
        stats = get_user_stats(self.conn, user_id)
        if stats is None:
            raise NotFoundError(f"no stats for {user_id}", user_id=user_id)
        return stats

    def record_settlement(
        self, user_id: str, won: bool, wagered: int, won_amount: int, now: int
    ) -> UserStats:
        with transaction(self.conn):
            return self._record(user_id, won, wagered, won_amount, now)

    def _record(self, user_id: str, won: bool, wagered: int, won_amount: int, now: int) -> UserStats:
        current = get_user_stats(self.conn, user_id) or UserStats(user_id=user_id)
        updated = apply_settlement(current, won, wagered, won_amount, now)
        save_user_stats(self.conn, updated)
        return updated

    def fold_market(self, market_id: str, now: int) -> int:
        """Record every participant of a resolved market once. Returns how many were new."""
        folded = 0
        with transaction(self.conn):
            market = get_market(self.conn, market_id)
            if market is None:
                raise NotFoundError(f"market {market_id} not found", market_id=market_id)
            if market.status is not MarketStatus.RESOLVED:
                raise StateError(f"market {market_id} is {market.status.value}, not resolved")
            winner_count = market.winner_count
            reward = 0
            if winner_count:
                reward = compute_reward(market.total_pool, market.fees, winner_count).reward
            for p in list_participants(self.conn, market_id):
                if is_folded(self.conn, market_id, p.user_id):
                    continue
                won = p.prediction is market.outcome
                self._record(p.user_id, won, market.entry_fee, reward if won else 0, now)
                mark_folded(self.conn, market_id, p.user_id, now)
                folded += 1
        log.info("stats_folded", market_id=market_id, folded=folded)
        return folded
