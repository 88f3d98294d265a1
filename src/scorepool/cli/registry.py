"""Registry subcommand: init, show, set-fee."""

from __future__ import annotations

import typer

from scorepool.cli.common import build_engine, open_db

app = typer.Typer(help="Market registry (factory)")


@app.command("init")
def init(
    ctx: typer.Context,
    platform_fee_bps: int | None = typer.Option(
        None, "--platform-fee-bps", help="Platform fee in bps (default from config)"
    ),
) -> None:
    """Initialize the configured registry authority."""
    settings = ctx.obj["settings"]
    fee = settings.platform_fee_bps if platform_fee_bps is None else platform_fee_bps
    with open_db(ctx) as conn:
        state = build_engine(ctx, conn).registry.initialize(fee, ctx.obj["clock"].now())
        typer.echo(f"Registry {state.authority}: platform fee {state.platform_fee_bps} bps")


@app.command("show")
def show(ctx: typer.Context) -> None:
    """Show registry state."""
    with open_db(ctx) as conn:
        state = build_engine(ctx, conn).registry.state()
        typer.echo(f"Authority:        {state.authority}")
        typer.echo(f"Platform fee:     {state.platform_fee_bps} bps")
        typer.echo(f"Markets created:  {state.market_count}")


@app.command("set-fee")
def set_fee(
    ctx: typer.Context,
    platform_fee_bps: int = typer.Argument(..., help="New platform fee in bps"),
    caller: str = typer.Option(..., "--caller", help="Must be the registry authority"),
) -> None:
    """Change the platform fee for markets created from now on."""
    with open_db(ctx) as conn:
        state = build_engine(ctx, conn).registry.update_platform_fee(caller, platform_fee_bps)
        typer.echo(f"Platform fee now {state.platform_fee_bps} bps")
