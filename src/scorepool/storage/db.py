"""DuckDB connection, schema init and transaction scope."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterator, TypeVar

import duckdb
import structlog

from scorepool.errors import StateError

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

T = TypeVar("T")

CONFLICT_ATTEMPTS = 3

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS settlement_event_seq START 1;

-- Settlement event log (append-only)
CREATE TABLE IF NOT EXISTS settlement_events (
    id              BIGINT PRIMARY KEY DEFAULT nextval('settlement_event_seq'),
    event_type      VARCHAR NOT NULL,
    market_id       VARCHAR NOT NULL,
    user_id         VARCHAR,
    created_at      BIGINT NOT NULL,
    payload         JSON NOT NULL
);

-- Ledger balances (user wallets, market escrows, fee accounts)
CREATE TABLE IF NOT EXISTS balances (
    account_id      VARCHAR PRIMARY KEY,
    amount          UBIGINT NOT NULL
);

-- Markets (one escrow + state machine per match)
CREATE TABLE IF NOT EXISTS markets (
    market_id           VARCHAR PRIMARY KEY,
    creator             VARCHAR NOT NULL,
    registry_id         VARCHAR NOT NULL,
    match_id            VARCHAR NOT NULL,
    entry_fee           UBIGINT NOT NULL,
    kickoff_time        BIGINT NOT NULL,
    end_time            BIGINT NOT NULL,
    is_public           BOOLEAN NOT NULL,
    status              VARCHAR NOT NULL,
    outcome             VARCHAR,
    total_pool          UBIGINT NOT NULL,
    participant_count   UINTEGER NOT NULL,
    home_count          UINTEGER NOT NULL,
    draw_count          UINTEGER NOT NULL,
    away_count          UINTEGER NOT NULL,
    creator_fee_bps     USMALLINT NOT NULL,
    platform_fee_bps    USMALLINT NOT NULL,
    fee_timing          VARCHAR NOT NULL,
    resolver_policy     VARCHAR NOT NULL,
    fees_distributed    BOOLEAN NOT NULL,
    created_at          BIGINT,
    resolved_at         BIGINT
);

-- Participants, one per (market, user)
CREATE TABLE IF NOT EXISTS participants (
    market_id       VARCHAR NOT NULL,
    user_id         VARCHAR NOT NULL,
    prediction      VARCHAR NOT NULL,
    joined_at       BIGINT NOT NULL,
    has_withdrawn   BOOLEAN NOT NULL,
    reward          UBIGINT NOT NULL,
    PRIMARY KEY (market_id, user_id)
);

-- Registry (market factory) state per authority
CREATE TABLE IF NOT EXISTS registry (
    authority           VARCHAR PRIMARY KEY,
    platform_fee_bps    USMALLINT NOT NULL,
    market_count        UBIGINT NOT NULL,
    created_at          BIGINT NOT NULL
);

-- Market records created through the registry
CREATE TABLE IF NOT EXISTS market_registry (
    market_id       VARCHAR PRIMARY KEY,
    authority       VARCHAR NOT NULL,
    creator         VARCHAR NOT NULL,
    match_id        VARCHAR NOT NULL,
    entry_fee       UBIGINT NOT NULL,
    kickoff_time    BIGINT NOT NULL,
    end_time        BIGINT NOT NULL,
    is_public       BOOLEAN NOT NULL,
    created_at      BIGINT NOT NULL
);

-- Per-user settlement statistics
CREATE TABLE IF NOT EXISTS user_stats (
    user_id         VARCHAR PRIMARY KEY,
    total_markets   UINTEGER NOT NULL,
    wins            UINTEGER NOT NULL,
    losses          UINTEGER NOT NULL,
    total_wagered   UBIGINT NOT NULL,
    total_won       UBIGINT NOT NULL,
    current_streak  INTEGER NOT NULL,
    best_streak     UINTEGER NOT NULL,
    last_updated    BIGINT
);

-- (market, user) pairs already folded into user_stats
CREATE TABLE IF NOT EXISTS stats_folds (
    market_id       VARCHAR NOT NULL,
    user_id         VARCHAR NOT NULL,
    folded_at       BIGINT NOT NULL,
    PRIMARY KEY (market_id, user_id)
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    ":memory:" opens an in-process database (tests, throwaway runs)."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise


@contextmanager
def transaction(conn: DuckDBPyConnection) -> Iterator[DuckDBPyConnection]:
    """Run the block as one transaction: commit on success, roll back on any exception.

    A write-write conflict with another connection aborts the losing transaction and is
    reported as StateError so callers see the same failure as a lost state check.
    """
    conn.begin()
    try:
        yield conn
        conn.commit()
    except duckdb.TransactionException as e:
        _rollback(conn)
        log.warning("transaction_conflict", error=str(e))
        raise StateError("concurrent modification, transaction aborted") from e
    except BaseException:
        _rollback(conn)
        raise


def _rollback(conn: DuckDBPyConnection) -> None:
    # A failed commit has already ended the transaction
    try:
        conn.rollback()
    except duckdb.TransactionException:
        pass


def run_in_transaction(
    conn: DuckDBPyConnection, body: Callable[[], T], attempts: int = CONFLICT_ATTEMPTS
) -> T:
    """Run body() as one transaction, re-running it from scratch after a write-write conflict.

    body must read everything it decides on inside the call. A rerun then sees the other
    writer's committed state and fails its own checks if that state made it invalid.
    StateError once every attempt has conflicted.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be positive, got {attempts}")
    attempt = 0
    while True:
        attempt += 1
        conn.begin()
        try:
            result = body()
            conn.commit()
            return result
        except duckdb.TransactionException as e:
            _rollback(conn)
            log.warning("transaction_conflict", attempt=attempt, attempts=attempts, error=str(e))
            if attempt == attempts:
                raise StateError(
                    f"concurrent modification, transaction aborted after {attempts} attempts"
                ) from e
        except BaseException:
            _rollback(conn)
            raise
