"""UserStats - per-user running settlement statistics."""

from __future__ import annotations

from pydantic import BaseModel


class UserStats(BaseModel):
    """Running totals; current_streak is positive for wins, negative for losses."""

    user_id: str
    total_markets: int = 0
    wins: int = 0
    losses: int = 0
    total_wagered: int = 0
    total_won: int = 0
    current_streak: int = 0
    best_streak: int = 0
    last_updated: int | None = None
