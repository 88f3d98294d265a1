"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field

from scorepool.models import Outcome


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_a_winner, invalid_state")


# --- Markets ---
class CreateMarketRequest(BaseModel):
    creator: str
    match_id: str
    entry_fee: int
    kickoff_time: int = Field(..., description="Unix seconds")
    end_time: int = Field(..., description="Unix seconds")
    is_public: bool = True
    creator_fee_bps: int | None = Field(None, description="Defaults to settlement.default_creator_fee_bps")


class JoinRequest(BaseModel):
    user_id: str
    prediction: Outcome


class ResolveRequest(BaseModel):
    resolver: str
    outcome: Outcome


class WithdrawRequest(BaseModel):
    user_id: str


class WithdrawResponse(BaseModel):
    market_id: str
    user_id: str
    reward: int


class AuditResponse(BaseModel):
    market_id: str
    ok: bool
    escrow_balance: int
    expected_balance: int
    total_pool: int
    unclaimed_rewards: int
    stranded: int
    undistributed_fees: int
    problems: list[str] = Field(default_factory=list)


# --- Ledger ---
class DepositRequest(BaseModel):
    amount: int = Field(..., gt=0)


class BalanceResponse(BaseModel):
    account: str
    balance: int
