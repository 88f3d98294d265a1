"""Shared CLI plumbing: open the database, build the engine, report errors."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

import typer

from scorepool.errors import SettlementError
from scorepool.settlement.engine import SettlementEngine
from scorepool.storage.db import get_connection, init_schema

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


@contextmanager
def open_db(ctx: typer.Context) -> Iterator[DuckDBPyConnection]:
    """Connection with schema ensured; SettlementError becomes a one-line message and exit 1."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        yield conn
    except SettlementError as e:
        typer.echo(f"Error [{e.code}]: {e.message}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        conn.close()


def build_engine(ctx: typer.Context, conn: DuckDBPyConnection) -> SettlementEngine:
    return SettlementEngine.from_settings(conn, ctx.obj["settings"], clock=ctx.obj["clock"])
