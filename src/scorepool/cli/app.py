"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from scorepool.config import get_settings
from scorepool.config.settings import configure_logging
from scorepool.ledger import FixedClock, SystemClock

app = typer.Typer(
    name="scorepool",
    help="ScorePool - Pooled match predictions with escrowed settlement.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
    now: int | None = typer.Option(
        None, "--now", help="Pin the clock to this unix timestamp (default: wall clock)"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    clock = FixedClock(now) if now is not None else SystemClock()
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile, "clock": clock}


# Subcommands registered from other modules
from scorepool.cli import api_cmd, ledger, log, market, registry, stats  # noqa: E402

app.add_typer(market.app, name="market")
app.add_typer(ledger.app, name="ledger")
app.add_typer(registry.app, name="registry")
app.add_typer(stats.app, name="stats")
app.add_typer(log.app, name="log")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
