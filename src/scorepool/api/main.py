"""FastAPI backend - the four settlement operations plus single-record reads."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scorepool.api.schemas import (
    AuditResponse,
    BalanceResponse,
    CreateMarketRequest,
    DepositRequest,
    ErrorResponse,
    HealthResponse,
    JoinRequest,
    ResolveRequest,
    WithdrawRequest,
    WithdrawResponse,
)
from scorepool.config import get_settings
from scorepool.errors import SettlementError
from scorepool.ledger import Clock, Ledger, SystemClock
from scorepool.models import Market, Participant, UserStats
from scorepool.settlement.audit import audit_market
from scorepool.settlement.engine import SettlementEngine
from scorepool.stats import StatsAggregator
from scorepool.storage.db import get_connection, init_schema, transaction

# Set by run_api(); tests swap _clock for a FixedClock.
_config_profile: str | None = None
_clock: Clock = SystemClock()

_ERRORS = {
    400: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _get_conn():
    settings = get_settings(_config_profile)
    return get_connection(settings.db_path)


def _engine(conn) -> SettlementEngine:
    return SettlementEngine.from_settings(conn, get_settings(_config_profile), clock=_clock)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Schema and registry row must exist before the first request
    settings = get_settings(_config_profile)
    conn = get_connection(settings.db_path)
    try:
        init_schema(conn)
        _engine(conn).registry.initialize(settings.platform_fee_bps, _clock.now())
    finally:
        conn.close()
    yield


app = FastAPI(title="ScorePool API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.exception_handler(SettlementError)
def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.post("/markets", response_model=Market, status_code=201, responses=_ERRORS)
def create_market(body: CreateMarketRequest) -> Market:
    settings = get_settings(_config_profile)
    creator_fee_bps = body.creator_fee_bps
    if creator_fee_bps is None:
        creator_fee_bps = settings.default_creator_fee_bps
    conn = _get_conn()
    try:
        return _engine(conn).initialize(
            body.creator,
            body.match_id,
            body.entry_fee,
            body.kickoff_time,
            body.end_time,
            is_public=body.is_public,
            creator_fee_bps=creator_fee_bps,
        )
    finally:
        conn.close()


@app.get("/markets/{market_id}", response_model=Market, responses=_ERRORS)
def market_detail(market_id: str) -> Market:
    conn = _get_conn()
    try:
        return _engine(conn).get_market(market_id)
    finally:
        conn.close()


@app.post("/markets/{market_id}/join", response_model=Participant, status_code=201, responses=_ERRORS)
def join_market(market_id: str, body: JoinRequest) -> Participant:
    conn = _get_conn()
    try:
        return _engine(conn).join(market_id, body.user_id, body.prediction)
    finally:
        conn.close()


@app.post("/markets/{market_id}/resolve", response_model=Market, responses=_ERRORS)
def resolve_market(market_id: str, body: ResolveRequest) -> Market:
    conn = _get_conn()
    try:
        return _engine(conn).resolve(market_id, body.resolver, body.outcome)
    finally:
        conn.close()


@app.post("/markets/{market_id}/withdraw", response_model=WithdrawResponse, responses=_ERRORS)
def withdraw_reward(market_id: str, body: WithdrawRequest) -> WithdrawResponse:
    conn = _get_conn()
    try:
        participant = _engine(conn).withdraw(market_id, body.user_id)
        return WithdrawResponse(market_id=market_id, user_id=participant.user_id, reward=participant.reward)
    finally:
        conn.close()


@app.get("/markets/{market_id}/participants/{user_id}", response_model=Participant, responses=_ERRORS)
def participant_detail(market_id: str, user_id: str) -> Participant:
    conn = _get_conn()
    try:
        return _engine(conn).get_participant(market_id, user_id)
    finally:
        conn.close()


@app.get("/markets/{market_id}/audit", response_model=AuditResponse, responses=_ERRORS)
def market_audit(market_id: str) -> AuditResponse:
    conn = _get_conn()
    try:
        result = audit_market(conn, market_id)
        return AuditResponse(ok=result.ok, **result.model_dump())
    finally:
        conn.close()


@app.get("/users/{user_id}/stats", response_model=UserStats, responses=_ERRORS)
def user_stats(user_id: str) -> UserStats:
    conn = _get_conn()
    try:
        return StatsAggregator(conn).get(user_id)
    finally:
        conn.close()


@app.post("/ledger/{account}/deposit", response_model=BalanceResponse, responses=_ERRORS)
def ledger_deposit(account: str, body: DepositRequest) -> BalanceResponse:
    conn = _get_conn()
    try:
        with transaction(conn):
            balance = Ledger(conn).deposit(account, body.amount)
        return BalanceResponse(account=account, balance=balance)
    finally:
        conn.close()


@app.get("/ledger/{account}", response_model=BalanceResponse)
def ledger_balance(account: str) -> BalanceResponse:
    conn = _get_conn()
    try:
        return BalanceResponse(account=account, balance=Ledger(conn).balance(account))
    finally:
        conn.close()


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
) -> None:
    global _config_profile
    _config_profile = profile
    import uvicorn
    uvicorn.run("scorepool.api.main:app", host=host, port=port, reload=False)
