"""user_stats and stats_folds persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scorepool.models import UserStats

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

STATS_COLUMNS = [
    "user_id",
    "total_markets",
    "wins",
    "losses",
    "total_wagered",
    "total_won",
    "current_streak",
    "best_streak",
    "last_updated",
]


def get_user_stats(conn: DuckDBPyConnection, user_id: str) -> UserStats | None:
    row = conn.execute(
        f"SELECT {', '.join(STATS_COLUMNS)} FROM user_stats WHERE user_id = ?", [user_id]
    ).fetchone()
    return UserStats(**dict(zip(STATS_COLUMNS, row))) if row else None


def save_user_stats(conn: DuckDBPyConnection, stats: UserStats) -> None:
    """Insert or replace one user's row."""
    values = [getattr(stats, c) for c in STATS_COLUMNS]
    if get_user_stats(conn, stats.user_id) is None:
        placeholders = ", ".join("?" for _ in STATS_COLUMNS)
        conn.execute(
            f"INSERT INTO user_stats ({', '.join(STATS_COLUMNS)}) VALUES ({placeholders})", values
        )
    else:
        assignments = ", ".join(f"{c} = ?" for c in STATS_COLUMNS[1:])
        conn.execute(
            f"UPDATE user_stats SET {assignments} WHERE user_id = ?", values[1:] + [stats.user_id]
        )


def is_folded(conn: DuckDBPyConnection, market_id: str, user_id: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM stats_folds WHERE market_id = ? AND user_id = ?", [market_id, user_id]
    ).fetchone()
    return row is not None


def mark_folded(conn: DuckDBPyConnection, market_id: str, user_id: str, folded_at: int) -> None:
    conn.execute(
        "INSERT INTO stats_folds (market_id, user_id, folded_at) VALUES (?, ?, ?)",
        [market_id, user_id, folded_at],
    )
