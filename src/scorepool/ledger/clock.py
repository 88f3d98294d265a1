"""Time source in unix seconds. The engine treats it as authoritative."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall clock, whole seconds."""

    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Settable clock for tests, replays and the CLI --now option."""

    def __init__(self, now: int = 0):
        self._now = now

    def now(self) -> int:
        return self._now

    def set(self, ts: int) -> None:
        if ts < self._now:
            raise ValueError(f"clock is monotonic: {ts} < {self._now}")
        self._now = ts

    def advance(self, seconds: int) -> int:
        self.set(self._now + seconds)
        return self._now
