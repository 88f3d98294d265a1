"""Ledger subcommand: fund, balance."""

from __future__ import annotations

import typer

from scorepool.cli.common import open_db
from scorepool.ledger import Ledger
from scorepool.storage.db import transaction

app = typer.Typer(help="Local account balances")


@app.command("fund")
def fund(
    ctx: typer.Context,
    account: str = typer.Argument(..., help="Account to credit"),
    amount: int = typer.Argument(..., help="Amount"),
) -> None:
    """Credit an account (local faucet)."""
    with open_db(ctx) as conn:
        with transaction(conn):
            balance = Ledger(conn).deposit(account, amount)
        typer.echo(f"{account}: {balance}")


@app.command("balance")
def balance(
    ctx: typer.Context,
    account: str = typer.Argument(..., help="Account"),
) -> None:
    """Show an account balance."""
    with open_db(ctx) as conn:
        typer.echo(f"{account}: {Ledger(conn).balance(account)}")
