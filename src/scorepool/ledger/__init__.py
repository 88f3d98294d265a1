"""Ledger boundary - atomic balance transfers and the clock."""

from scorepool.ledger.balances import Ledger
from scorepool.ledger.clock import Clock, FixedClock, SystemClock

__all__ = ["Clock", "FixedClock", "Ledger", "SystemClock"]
