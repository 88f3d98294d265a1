"""Escrow conservation audit.

escrow balance = unwithdrawn winner claims + stranded remainder + undistributed fees,
and total_pool = entry_fee * participant_count with the outcome counters summing to
participant_count.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from scorepool.errors import NotFoundError
from scorepool.ledger import Ledger
from scorepool.models import MarketStatus
from scorepool.settlement.fees import compute_fees, compute_reward
from scorepool.storage.markets import get_market, list_participants

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


class EscrowAudit(BaseModel):
    market_id: str
    escrow_balance: int
    expected_balance: int
    total_pool: int
    unclaimed_rewards: int = 0
    stranded: int = 0
    undistributed_fees: int = 0
    problems: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


def audit_market(conn: DuckDBPyConnection, market_id: str) -> EscrowAudit:
    market = get_market(conn, market_id)
    if market is None:
        raise NotFoundError(f"market {market_id} not found", market_id=market_id)
    participants = list_participants(conn, market_id)
    balance = Ledger(conn).balance(market.escrow_account)
    problems: list[str] = []

    if market.total_pool != market.entry_fee * market.participant_count:
        problems.append(
            f"total_pool {market.total_pool} != entry_fee {market.entry_fee} x {market.participant_count}"
        )
    counted = market.home_count + market.draw_count + market.away_count
    if counted != market.participant_count:
        problems.append(f"outcome counters sum to {counted}, participant_count is {market.participant_count}")
    if len(participants) != market.participant_count:
        problems.append(f"{len(participants)} participant records, participant_count is {market.participant_count}")
    if (market.status is MarketStatus.RESOLVED) != (market.outcome is not None):
        problems.append(f"status {market.status.value} with outcome {market.outcome}")

    unclaimed = stranded = undistributed = 0
    if market.status is not MarketStatus.RESOLVED:
        expected = market.total_pool
    else:
        fees = compute_fees(market.total_pool, market.fees)
        undistributed = 0 if market.fees_distributed else fees.total_fees
        winners = [p for p in participants if p.prediction is market.outcome]
        if winners:
            breakdown = compute_reward(market.total_pool, market.fees, len(winners))
            unclaimed = breakdown.reward * sum(1 for p in winners if not p.has_withdrawn)
            stranded = breakdown.remainder
        else:
            stranded = market.total_pool - fees.total_fees
        expected = unclaimed + stranded + undistributed

    if balance != expected:
        problems.append(f"escrow holds {balance}, expected {expected}")
    return EscrowAudit(
        market_id=market_id,
        escrow_balance=balance,
        expected_balance=expected,
        total_pool=market.total_pool,
        unclaimed_rewards=unclaimed,
        stranded=stranded,
        undistributed_fees=undistributed,
        problems=problems,
    )
