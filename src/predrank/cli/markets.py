"""Markets subcommand: top, list, history."""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from predrank.storage.db import get_connection, init_schema
from predrank.storage.markets import current_top_k, get_market, list_markets
from predrank.storage.snapshots import market_history

app = typer.Typer(help="Current top-K, cached markets and per-market history")


def _fmt_ts(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


@app.command("top")
def top(ctx: typer.Context) -> None:
    """Show the current top-K generation."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = current_top_k(conn)
        for rank, m in enumerate(rows, start=1):
            yes = f"{m.yes_price * 100:.1f}%" if m.yes_price is not None else "-"
            typer.echo(f"  {rank:>2}. {m.market_id:<12} {m.volume_24h:>14,.0f}  YES={yes:<6} {m.title[:60]}")
        typer.echo(f"Total: {len(rows)} markets")
    finally:
        conn.close()


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    category: str | None = typer.Option(None, "--category", "-c", help="Filter by category"),
    limit: int = typer.Option(50, "--limit", "-n"),
) -> None:
    """List cached markets, current or not."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = list_markets(conn, category=category, limit=limit)
        for m in rows:
            flag = "*" if m.is_current_top_k else " "
            typer.echo(f" {flag} {m.market_id:<12} {m.volume_24h:>14,.0f}  {(m.category or ''):<10} {m.title[:60]}")
        typer.echo(f"Total: {len(rows)} markets")
    finally:
        conn.close()


@app.command("history")
def history(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    hours: float = typer.Option(None, "--hours", help="Window in hours (default from config)"),
) -> None:
    """Show snapshots of one market within a time window."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        market = get_market(conn, market_id)
        if market is None:
            typer.echo(f"Market not found: {market_id}", err=True)
            raise typer.Exit(1)
        window = hours if hours is not None else settings.default_history_hours
        snaps = market_history(conn, market_id, window_hours=window)
        typer.echo(market.title)
        for s in snaps:
            typer.echo(f"  {_fmt_ts(s.captured_at)}  rank={s.rank:>2}  vol={s.volume_24h:,.0f}  yes={s.yes_price}")
        typer.echo(f"{len(snaps)} snapshots in the last {window:g}h")
    finally:
        conn.close()
