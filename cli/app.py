from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_aggregates, render_status


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Trigger housekeeping tasks on the tag history service and inspect its data.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="History API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds for API requests.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("aggregate")
def aggregate_command(ctx: typer.Context) -> None:
    """Roll up every complete day that has no daily aggregate yet."""
    state = _get_state(ctx)
    result = state.client.run_aggregation()
    typer.secho(result.get("message", "Aggregation finished."), fg=typer.colors.GREEN)


@app.command("clean")
def clean_command(
    ctx: typer.Context,
    days: Optional[int] = typer.Option(
        None,
        "--days",
        min=1,
        help="Retention horizon in days (defaults to RETENTION_DAYS env or 7).",
    ),
) -> None:
    """Delete raw readings older than the retention horizon."""
    state = _get_state(ctx)
    result = state.client.run_cleanup(days=days)
    typer.secho(result.get("message", "Cleanup finished."), fg=typer.colors.GREEN)


@app.command("current")
def current_command(ctx: typer.Context) -> None:
    """Show the latest reading, extremes and trend of every tag."""
    state = _get_state(ctx)
    render_status(state.client.get_current())


@app.command("aggregated")
def aggregated_command(
    ctx: typer.Context,
    tag: Optional[int] = typer.Option(None, "--tag", help="Only show this tag id."),
    date: Optional[str] = typer.Option(None, "--date", help="Only show this day (YYYY-MM-DD)."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum rows to show."),
) -> None:
    """List daily aggregates, newest first."""
    state = _get_state(ctx)
    render_aggregates(state.client.get_aggregated(tag=tag, date=date, limit=limit))
