"""Market subcommand: create, join, resolve, withdraw, show, audit."""

from __future__ import annotations

import typer

from scorepool.cli.common import build_engine, open_db
from scorepool.models import Market
from scorepool.settlement.audit import audit_market

app = typer.Typer(help="Create, join, resolve and settle markets")


def _echo_market(market: Market) -> None:
    outcome = market.outcome.value if market.outcome else "-"
    typer.echo(f"Market {market.market_id}")
    typer.echo(f"  match:        {market.match_id}  (creator {market.creator})")
    typer.echo(f"  status:       {market.status.value}  outcome: {outcome}")
    typer.echo(f"  entry fee:    {market.entry_fee}")
    typer.echo(f"  kickoff/end:  {market.kickoff_time} / {market.end_time}")
    typer.echo(
        f"  pool:         {market.total_pool}  participants: {market.participant_count} "
        f"(home {market.home_count}, draw {market.draw_count}, away {market.away_count})"
    )
    typer.echo(
        f"  fees:         creator {market.fees.creator_fee_bps} bps, platform {market.fees.platform_fee_bps} bps"
        f"  timing: {market.fee_timing.value}  distributed: {market.fees_distributed}"
    )
    typer.echo(f"  resolver:     {market.resolver_policy}")


@app.command("create")
def create(
    ctx: typer.Context,
    creator: str = typer.Option(..., "--creator", help="Creator account"),
    match_id: str = typer.Option(..., "--match", "-m", help="Match identifier (max 64 bytes)"),
    entry_fee: int = typer.Option(..., "--entry-fee", "-f", help="Fixed stake per participant"),
    kickoff: int = typer.Option(..., "--kickoff", help="Kickoff time (unix seconds)"),
    end: int = typer.Option(..., "--end", help="End time (unix seconds)"),
    creator_fee_bps: int | None = typer.Option(
        None, "--creator-fee-bps", help="Creator fee in bps (default from config)"
    ),
    private: bool = typer.Option(False, "--private", help="Create a private market"),
) -> None:
    """Create a market through the configured registry."""
    settings = ctx.obj["settings"]
    with open_db(ctx) as conn:
        engine = build_engine(ctx, conn)
        engine.registry.initialize(settings.platform_fee_bps, ctx.obj["clock"].now())
        market = engine.initialize(
            creator,
            match_id,
            entry_fee,
            kickoff,
            end,
            is_public=not private,
            creator_fee_bps=settings.default_creator_fee_bps if creator_fee_bps is None else creator_fee_bps,
        )
        typer.echo(f"Created market {market.market_id}")


@app.command("join")
def join(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    user: str = typer.Option(..., "--user", "-u", help="Participant account"),
    prediction: str = typer.Option(..., "--prediction", help="home, draw or away"),
) -> None:
    """Stake the entry fee on a prediction."""
    with open_db(ctx) as conn:
        participant = build_engine(ctx, conn).join(market_id, user, prediction.lower())
        typer.echo(f"{participant.user_id} predicted {participant.prediction.value} in {market_id}")


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    resolver: str = typer.Option(..., "--resolver", "-r", help="Resolving account"),
    outcome: str = typer.Option(..., "--outcome", "-o", help="home, draw or away"),
) -> None:
    """Record the match outcome (once)."""
    with open_db(ctx) as conn:
        market = build_engine(ctx, conn).resolve(market_id, resolver, outcome.lower())
        typer.echo(f"Resolved {market_id}: {market.outcome.value}, {market.winner_count} winner(s)")


@app.command("withdraw")
def withdraw(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    user: str = typer.Option(..., "--user", "-u", help="Winning account"),
) -> None:
    """Claim a winner's reward."""
    with open_db(ctx) as conn:
        participant = build_engine(ctx, conn).withdraw(market_id, user)
        typer.echo(f"Paid {participant.reward} to {participant.user_id}")


@app.command("show")
def show(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    participants: bool = typer.Option(False, "--participants", help="Also list participants"),
) -> None:
    """Show one market."""
    with open_db(ctx) as conn:
        engine = build_engine(ctx, conn)
        _echo_market(engine.get_market(market_id))
        typer.echo(f"  escrow:       {engine.escrow_balance(market_id)}")
        if participants:
            for p in engine.list_participants(market_id):
                flag = f"withdrew {p.reward}" if p.has_withdrawn else ""
                typer.echo(f"    {p.user_id:<24} {p.prediction.value:<5} {p.joined_at}  {flag}")


@app.command("audit")
def audit(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
) -> None:
    """Check escrow conservation for a market. Exit 1 on any discrepancy."""
    with open_db(ctx) as conn:
        result = audit_market(conn, market_id)
        typer.echo(
            f"escrow {result.escrow_balance} / expected {result.expected_balance} "
            f"(unclaimed {result.unclaimed_rewards}, stranded {result.stranded}, "
            f"undistributed fees {result.undistributed_fees})"
        )
        if not result.ok:
            for problem in result.problems:
                typer.echo(f"  ! {problem}", err=True)
            raise typer.Exit(code=1)
        typer.echo("OK")
