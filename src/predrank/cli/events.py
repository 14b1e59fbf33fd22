"""Events subcommand: recent top-K membership changes."""

from __future__ import annotations

import typer

from predrank.models import EventKind
from predrank.storage.db import get_connection, init_schema
from predrank.storage.events import recent_events

app = typer.Typer(help="Trending events (markets entering/exiting the top-K)")


@app.command("list")
def list_events(
    ctx: typer.Context,
    limit: int = typer.Option(None, "--limit", "-n", help="Max events (default from config)"),
    kind: EventKind | None = typer.Option(None, "--kind", help="ENTERED or EXITED"),
) -> None:
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = recent_events(conn, limit=limit or settings.default_event_limit, kind=kind)
        for e in rows:
            rank = f"#{e.new_rank}" if e.kind == EventKind.ENTERED else f"was #{e.old_rank}"
            typer.echo(f"  {e.kind.value:<8} {rank:<8} {e.volume_24h:>14,.0f}  {e.market_title[:60]}")
        typer.echo(f"Total: {len(rows)} events")
    finally:
        conn.close()
