"""Ledger transfers, transaction scope and the clock."""

import pytest

from scorepool.errors import CalculationError, FundsError, ValidationError
from scorepool.ledger import FixedClock, Ledger
from scorepool.settlement.arithmetic import U64_MAX
from scorepool.storage.db import transaction


def test_transfer_moves_funds(temp_db, fund):
    fund("alice", 500)
    ledger = Ledger(temp_db)
    with transaction(temp_db):
        ledger.transfer("alice", "bob", 200)
    assert ledger.balance("alice") == 300
    assert ledger.balance("bob") == 200


def test_transfer_insufficient_funds_changes_nothing(temp_db, fund):
    fund("alice", 50)
    ledger = Ledger(temp_db)
    with pytest.raises(FundsError):
        with transaction(temp_db):
            ledger.transfer("alice", "bob", 51)
    assert ledger.balance("alice") == 50
    assert ledger.balance("bob") == 0


def test_transaction_rolls_back_on_error(temp_db):
    ledger = Ledger(temp_db)
    with pytest.raises(RuntimeError):
        with transaction(temp_db):
            ledger.deposit("alice", 100)
            raise RuntimeError("boom")
    assert ledger.balance("alice") == 0


def test_deposit_rejects_non_positive(temp_db):
    with pytest.raises(ValidationError):
        Ledger(temp_db).deposit("alice", 0)


def test_credit_overflow_is_rejected(temp_db, fund):
    fund("alice", U64_MAX)
    fund("bob", 1)
    with pytest.raises(CalculationError):
        with transaction(temp_db):
            Ledger(temp_db).transfer("bob", "alice", 1)
    assert Ledger(temp_db).balance("bob") == 1


def test_fixed_clock_is_monotonic():
    clock = FixedClock(100)
    assert clock.advance(5) == 105
    clock.set(105)
    with pytest.raises(ValueError):
        clock.set(104)
