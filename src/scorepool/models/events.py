"""Settlement events - append-only notifications for external indexing."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    MARKET_CREATED = "MarketCreated"
    PREDICTION_MADE = "PredictionMade"
    MARKET_RESOLVED = "MarketResolved"
    FEES_DISTRIBUTED = "FeesDistributed"
    REWARD_CLAIMED = "RewardClaimed"


class SettlementEvent(BaseModel):
    """One row of the settlement event log."""

    id: int | None = None
    event_type: EventType
    market_id: str
    user_id: str | None = None
    created_at: int  # unix seconds
    payload: dict[str, Any] = Field(default_factory=dict)
