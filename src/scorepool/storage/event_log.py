"""Settlement event append and query - append-only notification log."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from scorepool.models import EventType, SettlementEvent

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def append_event(conn: DuckDBPyConnection, event: SettlementEvent) -> None:
    """Append a single event. Runs inside the caller's transaction."""
    conn.execute(
        """
        INSERT INTO settlement_events (event_type, market_id, user_id, created_at, payload)
        VALUES (?, ?, ?, ?, ?)
        """,
        [
            event.event_type.value,
            event.market_id,
            event.user_id,
            event.created_at,
            json.dumps(event.payload),
        ],
    )


def list_events(
    conn: DuckDBPyConnection,
    market_id: str | None = None,
    event_type: EventType | None = None,
) -> list[SettlementEvent]:
    """Events in append order, optionally for one market and/or one type."""
    conditions = []
    params: list[Any] = []
    if market_id:
        conditions.append("market_id = ?")
        params.append(market_id)
    if event_type is not None:
        conditions.append("event_type = ?")
        params.append(event_type.value)
    where = " AND ".join(conditions) if conditions else "1=1"
    rows = conn.execute(
        f"SELECT id, event_type, market_id, user_id, created_at, payload FROM settlement_events WHERE {where} ORDER BY id ASC",
        params,
    ).fetchall()
    out = []
    for event_id, etype, mid, user_id, created_at, payload in rows:
        out.append(
            SettlementEvent(
                id=event_id,
                event_type=EventType(etype),
                market_id=mid,
                user_id=user_id,
                created_at=created_at,
                payload=json.loads(payload) if isinstance(payload, str) else payload,
            )
        )
    return out


def log_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Return event log statistics: total count, min/max created_at, counts by type and market."""
    total = conn.execute("SELECT COUNT(*) FROM settlement_events").fetchone()[0]
    range_row = conn.execute(
        "SELECT MIN(created_at), MAX(created_at) FROM settlement_events"
    ).fetchone()
    by_type = conn.execute(
        "SELECT event_type, COUNT(*) AS cnt FROM settlement_events GROUP BY event_type ORDER BY event_type"
    ).fetchall()
    by_market = conn.execute(
        "SELECT market_id, COUNT(*) AS cnt FROM settlement_events GROUP BY market_id ORDER BY cnt DESC, market_id LIMIT 20"
    ).fetchall()
    return {
        "total_events": total,
        "min_created_at": range_row[0],
        "max_created_at": range_row[1],
        "by_type": {r[0]: r[1] for r in by_type},
        "by_market": [{"market_id": r[0], "count": r[1]} for r in by_market],
    }
