"""Registry (market factory) state and the records it creates."""

from __future__ import annotations

from pydantic import BaseModel


class RegistryState(BaseModel):
    authority: str
    platform_fee_bps: int
    market_count: int = 0
    created_at: int


class MarketRecord(BaseModel):
    """Registry-side record of a market it created."""

    market_id: str
    authority: str
    creator: str
    match_id: str
    entry_fee: int
    kickoff_time: int
    end_time: int
    is_public: bool = True
    created_at: int
