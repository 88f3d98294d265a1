"""Registry and market_registry persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scorepool.models import MarketRecord, RegistryState

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def get_registry(conn: DuckDBPyConnection, authority: str) -> RegistryState | None:
    row = conn.execute(
        "SELECT authority, platform_fee_bps, market_count, created_at FROM registry WHERE authority = ?",
        [authority],
    ).fetchone()
    if not row:
        return None
    return RegistryState(
        authority=row[0], platform_fee_bps=row[1], market_count=row[2], created_at=row[3]
    )


def insert_registry(conn: DuckDBPyConnection, state: RegistryState) -> None:
    conn.execute(
        "INSERT INTO registry (authority, platform_fee_bps, market_count, created_at) VALUES (?, ?, ?, ?)",
        [state.authority, state.platform_fee_bps, state.market_count, state.created_at],
    )


def update_registry(conn: DuckDBPyConnection, state: RegistryState) -> None:
    conn.execute(
        "UPDATE registry SET platform_fee_bps = ?, market_count = ? WHERE authority = ?",
        [state.platform_fee_bps, state.market_count, state.authority],
    )


def insert_market_record(conn: DuckDBPyConnection, record: MarketRecord) -> None:
    conn.execute(
        """
        INSERT INTO market_registry
            (market_id, authority, creator, match_id, entry_fee, kickoff_time, end_time, is_public, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            record.market_id,
            record.authority,
            record.creator,
            record.match_id,
            record.entry_fee,
            record.kickoff_time,
            record.end_time,
            record.is_public,
            record.created_at,
        ],
    )


def get_market_record(conn: DuckDBPyConnection, market_id: str) -> MarketRecord | None:
    row = conn.execute(
        """
        SELECT market_id, authority, creator, match_id, entry_fee, kickoff_time, end_time, is_public, created_at
        FROM market_registry WHERE market_id = ?
        """,
        [market_id],
    ).fetchone()
    if not row:
        return None
    columns = [
        "market_id",
        "authority",
        "creator",
        "match_id",
        "entry_fee",
        "kickoff_time",
        "end_time",
        "is_public",
        "created_at",
    ]
    return MarketRecord(**dict(zip(columns, row)))
