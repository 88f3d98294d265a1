"""Checked arithmetic, fee and reward formulas."""

import pytest

from scorepool.errors import CalculationError
from scorepool.models import FeeSchedule
from scorepool.settlement.arithmetic import (
    U32_MAX,
    U64_MAX,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
)
from scorepool.settlement.fees import bps_of, compute_fees, compute_reward


def test_checked_ops_reject_overflow_underflow_and_zero_division():
    assert checked_add(U64_MAX - 1, 1) == U64_MAX
    with pytest.raises(CalculationError):
        checked_add(U64_MAX, 1)
    with pytest.raises(CalculationError):
        checked_add(U32_MAX, 1, limit=U32_MAX)
    with pytest.raises(CalculationError):
        checked_sub(1, 2)
    with pytest.raises(CalculationError):
        checked_mul(2**33, 2**33)
    with pytest.raises(CalculationError):
        checked_div(10, 0)
    assert checked_div(7, 2) == 3


def test_calculation_error_is_an_arithmetic_error():
    with pytest.raises(ArithmeticError):
        checked_sub(0, 1)


def test_bps_of_large_pool_does_not_overflow_intermediate():
    assert bps_of(U64_MAX, 10_000) == U64_MAX
    assert bps_of(U64_MAX, 100) == U64_MAX // 100


def test_concrete_fee_and_reward_scenario():
    schedule = FeeSchedule(creator_fee_bps=100, platform_fee_bps=100)
    fees = compute_fees(300, schedule)
    assert (fees.creator_fee, fees.platform_fee, fees.total_fees) == (3, 3, 6)
    reward = compute_reward(300, schedule, winner_count=2)
    assert reward.prize_pool == 294
    assert reward.reward == 147
    assert reward.remainder == 0


def test_remainder_is_stranded():
    reward = compute_reward(1000, FeeSchedule(creator_fee_bps=0, platform_fee_bps=0), winner_count=3)
    assert reward.reward == 333
    assert reward.remainder == 1


def test_zero_winners_is_a_calculation_error():
    with pytest.raises(CalculationError):
        compute_reward(300, FeeSchedule(), winner_count=0)


@pytest.mark.parametrize(
    "pool,creator_bps,platform_bps,winners",
    [
        (300, 100, 100, 2),
        (1_000, 250, 0, 3),
        (999_999, 333, 667, 7),
        (10_000, 5_000, 5_000, 4),
        (12_345_678_901, 0, 1_000, 11),
        (10**18, 9_999, 1, 999),
    ],
)
def test_reward_conservation(pool, creator_bps, platform_bps, winners):
    schedule = FeeSchedule(creator_fee_bps=creator_bps, platform_fee_bps=platform_bps)
    fees = compute_fees(pool, schedule)
    r = compute_reward(pool, schedule, winners)
    assert r.prize_pool == pool - fees.total_fees
    assert r.reward * winners <= r.prize_pool
    assert r.reward * winners + r.remainder == r.prize_pool
    assert 0 <= r.remainder < winners
    # Pools whose fee shares divide exactly meet the net-of-fees floor bound
    if (pool * creator_bps) % 10_000 == 0 and (pool * platform_bps) % 10_000 == 0:
        assert r.reward * winners <= pool * (10_000 - creator_bps - platform_bps) // 10_000


def test_separately_floored_fees_can_leave_two_extra_units_in_prize_pool():
    # Each 0.5% share of 150 is 0.75 and floors to 0
    schedule = FeeSchedule(creator_fee_bps=50, platform_fee_bps=50)
    fees = compute_fees(150, schedule)
    assert (fees.creator_fee, fees.platform_fee) == (0, 0)
    r = compute_reward(150, schedule, winner_count=1)
    assert r.reward == r.prize_pool == 150
    net_of_fees = 150 * (10_000 - 50 - 50) // 10_000
    assert net_of_fees == 148
    assert r.reward - net_of_fees == 2
