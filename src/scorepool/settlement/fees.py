"""Fee and reward formulas.

The prize pool is always ``total_pool - total_fees``. Fee timing only decides *when* the
fees leave escrow; ``total_pool`` itself is never reduced, so the reward formula is the
same under both conventions and fees are charged exactly once.
"""

from __future__ import annotations

from pydantic import BaseModel

from scorepool.errors import ValidationError
from scorepool.models import BPS_DENOMINATOR, FeeSchedule
from scorepool.settlement.arithmetic import U64_MAX, checked_add, checked_div, checked_mul, checked_sub

# pool * bps may exceed u64 before the division brings it back into range
_PRODUCT_LIMIT = U64_MAX * BPS_DENOMINATOR


class FeeBreakdown(BaseModel):
    creator_fee: int
    platform_fee: int

    @property
    def total_fees(self) -> int:
        return self.creator_fee + self.platform_fee


class RewardBreakdown(BaseModel):
    prize_pool: int
    winner_count: int
    reward: int
    remainder: int  # stranded in escrow


def bps_of(amount: int, bps: int) -> int:
    """floor(amount * bps / 10000)."""
    return checked_div(checked_mul(amount, bps, limit=_PRODUCT_LIMIT), BPS_DENOMINATOR)


def validate_schedule(schedule: FeeSchedule) -> None:
    if schedule.total_bps > BPS_DENOMINATOR:
        raise ValidationError(
            f"total fees {schedule.total_bps} bps exceed {BPS_DENOMINATOR} bps",
            creator_fee_bps=schedule.creator_fee_bps,
            platform_fee_bps=schedule.platform_fee_bps,
        )


def compute_fees(total_pool: int, schedule: FeeSchedule) -> FeeBreakdown:
    creator_fee = bps_of(total_pool, schedule.creator_fee_bps)
    platform_fee = bps_of(total_pool, schedule.platform_fee_bps)
    # Sum of floors never exceeds the pool when total bps <= 10000
    checked_sub(total_pool, checked_add(creator_fee, platform_fee))
    return FeeBreakdown(creator_fee=creator_fee, platform_fee=platform_fee)


def compute_reward(total_pool: int, schedule: FeeSchedule, winner_count: int) -> RewardBreakdown:
    """Even split of the prize pool; the integer-division remainder is never distributed."""
    fees = compute_fees(total_pool, schedule)
    prize_pool = checked_sub(total_pool, fees.total_fees)
    reward = checked_div(prize_pool, winner_count)
    remainder = checked_sub(prize_pool, checked_mul(reward, winner_count))
    return RewardBreakdown(
        prize_pool=prize_pool,
        winner_count=winner_count,
        reward=reward,
        remainder=remainder,
    )
