"""Market, Participant, FeeSchedule - escrowed three-way prediction market."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

MAX_MATCH_ID_LEN = 64  # bytes, UTF-8
BPS_DENOMINATOR = 10_000


class Outcome(str, Enum):
    """Fixed three-way match outcome."""

    HOME = "home"
    DRAW = "draw"
    AWAY = "away"


class MarketStatus(str, Enum):
    """Lifecycle status. Only OPEN -> RESOLVED is produced; LIVE and CANCELLED are reserved."""

    OPEN = "open"
    LIVE = "live"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class FeeTiming(str, Enum):
    """When creator and platform fees leave escrow. Frozen per market."""

    AT_RESOLVE = "resolve"
    AT_WITHDRAW = "withdraw"


class FeeSchedule(BaseModel):
    """Creator and platform fees in basis points (100 = 1%)."""

    creator_fee_bps: int = Field(0, ge=0, le=BPS_DENOMINATOR)
    platform_fee_bps: int = Field(0, ge=0, le=BPS_DENOMINATOR)

    @property
    def total_bps(self) -> int:
        return self.creator_fee_bps + self.platform_fee_bps


class Market(BaseModel):
    """One escrow + state machine per predicted match."""

    market_id: str
    creator: str
    registry_id: str = ""
    match_id: str
    entry_fee: int = Field(..., gt=0)
    kickoff_time: int  # unix seconds
    end_time: int  # unix seconds
    is_public: bool = True
    status: MarketStatus = MarketStatus.OPEN
    outcome: Outcome | None = None
    total_pool: int = 0
    participant_count: int = 0
    home_count: int = 0
    draw_count: int = 0
    away_count: int = 0
    fees: FeeSchedule = Field(default_factory=FeeSchedule)
    fee_timing: FeeTiming = FeeTiming.AT_RESOLVE
    resolver_policy: str = "creator"
    fees_distributed: bool = False
    created_at: int | None = None
    resolved_at: int | None = None

    @property
    def escrow_account(self) -> str:
        return escrow_account(self.market_id)

    def count_for(self, outcome: Outcome) -> int:
        """Number of participants who predicted outcome."""
        if outcome is Outcome.HOME:
            return self.home_count
        if outcome is Outcome.DRAW:
            return self.draw_count
        return self.away_count

    @property
    def winner_count(self) -> int:
        """Participants whose prediction matches the resolved outcome (0 while unresolved)."""
        if self.outcome is None:
            return 0
        return self.count_for(self.outcome)


class Participant(BaseModel):
    """A user's single staked prediction against a market."""

    market_id: str
    user_id: str
    prediction: Outcome
    joined_at: int
    has_withdrawn: bool = False
    reward: int = 0


def escrow_account(market_id: str) -> str:
    """Ledger account holding a market's pooled stakes."""
    return f"escrow:{market_id}"
