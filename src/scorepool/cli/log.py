"""Log subcommand: stats, export, replay."""

from __future__ import annotations

import typer

from scorepool.cli.common import open_db
from scorepool.replay.engine import replay_market, verify_market
from scorepool.storage.event_log import log_stats
from scorepool.storage.export import export_events_to_parquet

app = typer.Typer(help="Settlement event log export, statistics and replay")


@app.command("export")
def export(
    ctx: typer.Context,
    market: str | None = typer.Option(None, "--market", "-m", help="Filter by market ID"),
    output: str = typer.Option("events.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export settlement events to Parquet."""
    with open_db(ctx) as conn:
        count = export_events_to_parquet(conn, output, market_id=market)
        typer.echo(f"Exported {count} events to {output}")


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show event log statistics (counts, time range, by type and market)."""
    with open_db(ctx) as conn:
        s = log_stats(conn)
        typer.echo(f"Total events: {s['total_events']}")
        typer.echo(f"Min created_at: {s.get('min_created_at')}")
        typer.echo(f"Max created_at: {s.get('max_created_at')}")
        for event_type, count in s["by_type"].items():
            typer.echo(f"  {event_type:<18} {count}")
        if s.get("by_market"):
            typer.echo("By market (top 20):")
            for row in s["by_market"]:
                typer.echo(f"  {row['market_id']}  {row['count']}")


@app.command("replay")
def replay(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
) -> None:
    """Rebuild a market from its events and compare with the stored records."""
    with open_db(ctx) as conn:
        state = replay_market(conn, market_id)
        typer.echo(f"Replayed {state.events_applied} events")
        typer.echo(f"  pool {state.total_pool}, participants {state.participant_count}, counts {state.counts}")
        typer.echo(f"  status {state.status.value}, outcome {state.outcome.value if state.outcome else '-'}")
        typer.echo(f"  fees paid {state.fees_paid}, rewards paid {state.rewards_paid}, escrow {state.escrow_balance}")
        mismatches = verify_market(conn, market_id)
        if mismatches:
            for m in mismatches:
                typer.echo(f"  ! {m}", err=True)
            raise typer.Exit(code=1)
        typer.echo("Stored records match the event log")
