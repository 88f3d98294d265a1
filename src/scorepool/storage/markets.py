"""Market and participant persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from scorepool.models import FeeSchedule, Market, MarketStatus, Outcome, Participant

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

MARKET_COLUMNS = [
    "market_id",
    "creator",
    "registry_id",
    "match_id",
    "entry_fee",
    "kickoff_time",
    "end_time",
    "is_public",
    "status",
    "outcome",
    "total_pool",
    "participant_count",
    "home_count",
    "draw_count",
    "away_count",
    "creator_fee_bps",
    "platform_fee_bps",
    "fee_timing",
    "resolver_policy",
    "fees_distributed",
    "created_at",
    "resolved_at",
]

PARTICIPANT_COLUMNS = ["market_id", "user_id", "prediction", "joined_at", "has_withdrawn", "reward"]


def _market_from_row(row: tuple[Any, ...]) -> Market:
    d = dict(zip(MARKET_COLUMNS, row))
    fees = FeeSchedule(
        creator_fee_bps=d.pop("creator_fee_bps"),
        platform_fee_bps=d.pop("platform_fee_bps"),
    )
    return Market(**d, fees=fees)


def _participant_from_row(row: tuple[Any, ...]) -> Participant:
    return Participant(**dict(zip(PARTICIPANT_COLUMNS, row)))


def insert_market(conn: DuckDBPyConnection, market: Market) -> None:
    placeholders = ", ".join("?" for _ in MARKET_COLUMNS)
    conn.execute(
        f"INSERT INTO markets ({', '.join(MARKET_COLUMNS)}) VALUES ({placeholders})",
        [
            market.market_id,
            market.creator,
            market.registry_id,
            market.match_id,
            market.entry_fee,
            market.kickoff_time,
            market.end_time,
            market.is_public,
            market.status.value,
            market.outcome.value if market.outcome else None,
            market.total_pool,
            market.participant_count,
            market.home_count,
            market.draw_count,
            market.away_count,
            market.fees.creator_fee_bps,
            market.fees.platform_fee_bps,
            market.fee_timing.value,
            market.resolver_policy,
            market.fees_distributed,
            market.created_at,
            market.resolved_at,
        ],
    )


def get_market(conn: DuckDBPyConnection, market_id: str) -> Market | None:
    row = conn.execute(
        f"SELECT {', '.join(MARKET_COLUMNS)} FROM markets WHERE market_id = ?", [market_id]
    ).fetchone()
    return _market_from_row(row) if row else None


def update_market_accounting(conn: DuckDBPyConnection, market: Market) -> None:
    """Persist pool and per-outcome counters after a join."""
    conn.execute(
        """
        UPDATE markets SET
            total_pool = ?,
            participant_count = ?,
            home_count = ?,
            draw_count = ?,
            away_count = ?
        WHERE market_id = ?
        """,
        [
            market.total_pool,
            market.participant_count,
            market.home_count,
            market.draw_count,
            market.away_count,
            market.market_id,
        ],
    )


def mark_market_resolved(
    conn: DuckDBPyConnection, market_id: str, outcome: Outcome, resolved_at: int
) -> None:
    conn.execute(
        "UPDATE markets SET status = ?, outcome = ?, resolved_at = ? WHERE market_id = ?",
        [MarketStatus.RESOLVED.value, outcome.value, resolved_at, market_id],
    )


def mark_fees_distributed(conn: DuckDBPyConnection, market_id: str) -> None:
    conn.execute("UPDATE markets SET fees_distributed = true WHERE market_id = ?", [market_id])


def insert_participant(conn: DuckDBPyConnection, participant: Participant) -> None:
    conn.execute(
        f"INSERT INTO participants ({', '.join(PARTICIPANT_COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?)",
        [
            participant.market_id,
            participant.user_id,
            participant.prediction.value,
            participant.joined_at,
            participant.has_withdrawn,
            participant.reward,
        ],
    )


def get_participant(conn: DuckDBPyConnection, market_id: str, user_id: str) -> Participant | None:
    row = conn.execute(
        f"SELECT {', '.join(PARTICIPANT_COLUMNS)} FROM participants WHERE market_id = ? AND user_id = ?",
        [market_id, user_id],
    ).fetchone()
    return _participant_from_row(row) if row else None


def list_participants(conn: DuckDBPyConnection, market_id: str) -> list[Participant]:
    """All participants of one market in join order."""
    rows = conn.execute(
        f"SELECT {', '.join(PARTICIPANT_COLUMNS)} FROM participants WHERE market_id = ? ORDER BY joined_at, user_id",
        [market_id],
    ).fetchall()
    return [_participant_from_row(r) for r in rows]


def mark_withdrawn(conn: DuckDBPyConnection, market_id: str, user_id: str, reward: int) -> None:
    conn.execute(
        "UPDATE participants SET has_withdrawn = true, reward = ? WHERE market_id = ? AND user_id = ?",
        [reward, market_id, user_id],
    )
