"""Sweep command: retention cleanup only."""

import typer

from predrank.storage.db import get_connection, init_schema
from predrank.storage.retention import sweep

app = typer.Typer(help="Delete snapshots, stale markets and events past their horizons")


@app.callback(invoke_without_command=True)
def sweep_cmd(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        counts = sweep(
            conn,
            snapshot_days=settings.snapshot_retention_days,
            stale_market_hours=settings.stale_market_hours,
            event_days=settings.event_retention_days,
        )
    finally:
        conn.close()
    typer.echo(f"Deleted snapshots={counts.snapshots} markets={counts.markets} events={counts.events}")
