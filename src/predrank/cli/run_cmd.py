"""Run command: one fetch/rank/snapshot/diff/update/sweep pass."""

import typer

from predrank.pipeline.runner import TopKRunner
from predrank.storage.db import get_connection, init_schema

app = typer.Typer(help="Run the ranking pipeline once (for an external scheduler)")


@app.callback(invoke_without_command=True)
def run(
    ctx: typer.Context,
    k: int = typer.Option(None, "--k", "-k", help="Top-K size (overrides config)"),
) -> None:
    """Fetch, rank and persist the current top-K. Exits 1 if the run failed."""
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        runner = TopKRunner.from_settings(conn, settings)
        if k is not None:
            runner.k = k
        report = runner.run()
    finally:
        conn.close()
    if not report.ok:
        typer.echo(f"Run {report.run_id} failed in {report.failed_in.value}: {report.error}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Run {report.run_id}: fetched {report.fetched}, valid {report.valid}, ranked {len(report.top)}")
    for entry in report.top:
        typer.echo(
            f"  {entry.rank:>2}. {entry.title[:60]:<60}  vol={entry.volume_24h:,.0f}  YES={entry.yes_price * 100:.1f}%"
        )
    typer.echo(
        f"Snapshots: {report.snapshots_written}  Entered: {report.entered}  Exited: {report.exited}"
    )
