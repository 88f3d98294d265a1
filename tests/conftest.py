"""Shared fixtures: temporary DuckDB, pinned clock, engine, funded accounts."""

import shutil
import tempfile
from pathlib import Path

import pytest

from scorepool.ledger import FixedClock, Ledger
from scorepool.settlement.audit import audit_market
from scorepool.settlement.engine import SettlementEngine
from scorepool.storage.db import get_connection, init_schema, transaction

NOW = 1_700_000_000
KICKOFF = NOW + 3_600
END = KICKOFF + 7_200


@pytest.fixture
def db_path():
    tmp = tempfile.mkdtemp()
    yield Path(tmp) / "test.duckdb"
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def temp_db(db_path):
    conn = get_connection(db_path)
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def other_conn(temp_db, db_path):
    """A second connection to the same database file."""
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def engine(temp_db, clock):
    return SettlementEngine(
        temp_db,
        clock=clock,
        platform_fee_account="platform",
        fee_timing="resolve",
        resolver_policy="creator",
        platform_fee_bps=100,
    )


@pytest.fixture
def fund(temp_db):
    """fund(account, amount) credits the ledger in its own transaction."""

    def _fund(account: str, amount: int) -> None:
        with transaction(temp_db):
            Ledger(temp_db).deposit(account, amount)

    return _fund


def assert_conserved(conn, market_id: str) -> None:
    result = audit_market(conn, market_id)
    assert result.ok, result.problems
