"""Canonical schema (Pydantic) - Market, Participant, events, stats."""

from scorepool.models.events import EventType, SettlementEvent
from scorepool.models.market import (
    BPS_DENOMINATOR,
    MAX_MATCH_ID_LEN,
    FeeSchedule,
    FeeTiming,
    Market,
    MarketStatus,
    Outcome,
    Participant,
    escrow_account,
)
from scorepool.models.registry import MarketRecord, RegistryState
from scorepool.models.stats import UserStats

__all__ = [
    "BPS_DENOMINATOR",
    "MAX_MATCH_ID_LEN",
    "EventType",
    "FeeSchedule",
    "FeeTiming",
    "Market",
    "MarketRecord",
    "MarketStatus",
    "Outcome",
    "Participant",
    "RegistryState",
    "SettlementEvent",
    "UserStats",
    "escrow_account",
]
