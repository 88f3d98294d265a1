"""Stats subcommand: fold, show."""

from __future__ import annotations

import typer

from scorepool.cli.common import open_db
from scorepool.stats import StatsAggregator

app = typer.Typer(help="Per-user settlement statistics")


@app.command("fold")
def fold(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Resolved market ID"),
) -> None:
    """Fold a resolved market's results into user stats (repeat folds are no-ops)."""
    with open_db(ctx) as conn:
        n = StatsAggregator(conn).fold_market(market_id, ctx.obj["clock"].now())
        typer.echo(f"Folded {n} participant(s)")


@app.command("show")
def show(
    ctx: typer.Context,
    user: str = typer.Argument(..., help="User account"),
) -> None:
    """Show one user's stats."""
    with open_db(ctx) as conn:
        s = StatsAggregator(conn).get(user)
        typer.echo(f"{s.user_id}: {s.wins}W {s.losses}L over {s.total_markets} market(s)")
        typer.echo(f"  wagered {s.total_wagered}, won {s.total_won}")
        typer.echo(f"  streak {s.current_streak:+d} (best {s.best_streak})")
