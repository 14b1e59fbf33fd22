"""Stats command."""

import typer

from predrank.storage.db import get_connection, init_schema
from predrank.storage.markets import market_stats

app = typer.Typer(help="Show datastore statistics")


@app.callback(invoke_without_command=True)
def stats(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        s = market_stats(conn)
    finally:
        conn.close()
    typer.echo(f"Current top-K: {s['current_top_k']}")
    typer.echo(f"Total markets: {s['total_markets']}")
    typer.echo(f"Total snapshots: {s['total_snapshots']}")
    typer.echo(f"Events (24h): {s['recent_events']}")
    typer.echo(f"Top-K 24h volume: {s['total_volume_24h']:,.0f}")
    if s["top_market"]:
        typer.echo(f"Top market: {s['top_market']['title']}")
