"""Deterministic replay from the settlement event log - rebuild and verify market accounting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from scorepool.errors import NotFoundError
from scorepool.ledger import Ledger
from scorepool.models import EventType, MarketStatus, Outcome, SettlementEvent
from scorepool.storage.event_log import list_events
from scorepool.storage.markets import get_market, list_participants


@dataclass
class ReplayState:
    """Market accounting as implied by its events alone."""

    market_id: str
    entry_fee: int = 0
    total_pool: int = 0
    participant_count: int = 0
    counts: dict[str, int] = field(default_factory=lambda: {o.value: 0 for o in Outcome})
    status: MarketStatus = MarketStatus.OPEN
    outcome: Outcome | None = None
    fees_paid: int = 0
    fees_distributed: bool = False
    rewards_paid: int = 0
    withdrawn: set[str] = field(default_factory=set)
    events_applied: int = 0

    @property
    def escrow_balance(self) -> int:
        return self.total_pool - self.fees_paid - self.rewards_paid

    def apply(self, event: SettlementEvent) -> None:
        p = event.payload
        if event.event_type is EventType.MARKET_CREATED:
            self.entry_fee = int(p.get("entry_fee", 0))
        elif event.event_type is EventType.PREDICTION_MADE:
            self.total_pool += int(p.get("amount", self.entry_fee))
            self.participant_count += 1
            self.counts[str(p["prediction"])] += 1
        elif event.event_type is EventType.MARKET_RESOLVED:
            self.status = MarketStatus.RESOLVED
            self.outcome = Outcome(p["outcome"])
        elif event.event_type is EventType.FEES_DISTRIBUTED:
            self.fees_paid += int(p.get("creator_fee", 0)) + int(p.get("platform_fee", 0))
            self.fees_distributed = True
        elif event.event_type is EventType.REWARD_CLAIMED:
            self.rewards_paid += int(p.get("amount", 0))
            if event.user_id:
                self.withdrawn.add(event.user_id)
        self.events_applied += 1


def stream_events(conn: Any, market_id: str) -> Iterator[SettlementEvent]:
    """Yield a market's events in append order."""
    yield from list_events(conn, market_id=market_id)


def replay_market(conn: Any, market_id: str) -> ReplayState:
    """Fold the market's events into a ReplayState. Same log, same result."""
    state = ReplayState(market_id=market_id)
    for event in stream_events(conn, market_id):
        state.apply(event)
    if state.events_applied == 0:
        raise NotFoundError(f"no events for market {market_id}", market_id=market_id)
    return state


def verify_market(conn: Any, market_id: str) -> list[str]:
    """Compare the replayed state with the stored records. Empty list means they agree."""
    market = get_market(conn, market_id)
    if market is None:
        raise NotFoundError(f"market {market_id} not found", market_id=market_id)
    state = replay_market(conn, market_id)
    mismatches: list[str] = []

    def check(name: str, stored: Any, replayed: Any) -> None:
        if stored != replayed:
            mismatches.append(f"{name}: stored {stored}, replayed {replayed}")

    check("total_pool", market.total_pool, state.total_pool)
    check("participant_count", market.participant_count, state.participant_count)
    check("home_count", market.home_count, state.counts[Outcome.HOME.value])
    check("draw_count", market.draw_count, state.counts[Outcome.DRAW.value])
    check("away_count", market.away_count, state.counts[Outcome.AWAY.value])
    check("status", market.status, state.status)
    check("outcome", market.outcome, state.outcome)
    withdrawn = {p.user_id for p in list_participants(conn, market_id) if p.has_withdrawn}
    check("withdrawn", sorted(withdrawn), sorted(state.withdrawn))
    check("fees_distributed", market.fees_distributed, state.fees_distributed)
    check("escrow_balance", Ledger(conn).balance(market.escrow_account), state.escrow_balance)
    return mismatches
