from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_daily,
    render_hourly,
    render_ingest,
    render_monthly,
    render_recalculate,
    render_weekly,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the sensor reports service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Reports API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request.",
    ),
    timezone: Optional[str] = typer.Option(
        None,
        "--timezone",
        "-z",
        help="IANA timezone for dates and report rendering (server default when omitted).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout, timezone=timezone)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("import")
def import_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
) -> None:
    """Upload a CSV file of raw readings."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    render_ingest(state.client.import_readings(file))


@app.command("recalculate")
def recalculate_command(
    ctx: typer.Context,
    start: str = typer.Option(..., "--from", help="Window start, ISO-8601."),
    end: str = typer.Option(..., "--to", help="Window end (exclusive), ISO-8601."),
    device_id: Optional[str] = typer.Option(None, "--device-id", "-d"),
    sensor_type: Optional[str] = typer.Option(None, "--sensor-type", "-s"),
) -> None:
    """Recompute hourly aggregates for a time window."""
    state = _get_state(ctx)
    render_recalculate(
        state.client.recalculate(start, end, device_id=device_id, sensor_type=sensor_type)
    )


@app.command("hourly")
def hourly_command(
    ctx: typer.Context,
    device_id: Optional[str] = typer.Option(None, "--device-id", "-d"),
    sensor_type: Optional[str] = typer.Option(None, "--sensor-type", "-s"),
    date: Optional[str] = typer.Option(None, "--date", help="Local date, YYYY-MM-DD."),
    start: Optional[str] = typer.Option(None, "--from", help="Window start, ISO-8601."),
    end: Optional[str] = typer.Option(None, "--to", help="Window end, ISO-8601."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
    page: Optional[int] = typer.Option(None, "--page", min=1),
) -> None:
    """List stored hourly aggregates."""
    state = _get_state(ctx)
    payload = state.client.hourly_report(
        device_id=device_id,
        sensor_type=sensor_type,
        date=date,
        start=start,
        end=end,
        limit=limit,
        page=page,
    )
    render_hourly(payload)


@app.command("daily")
def daily_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    date: str = typer.Argument(..., help="Local date, YYYY-MM-DD."),
) -> None:
    """Show the hour-by-hour report of one day."""
    state = _get_state(ctx)
    render_daily(state.client.daily_report(device_id, date))


@app.command("monthly")
def monthly_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    year: int = typer.Argument(..., min=2000, max=2100),
    month: int = typer.Argument(..., min=1, max=12),
) -> None:
    """Show one summary row per day of a month."""
    state = _get_state(ctx)
    render_monthly(state.client.monthly_report(device_id, year, month))


@app.command("weekly")
def weekly_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    days: int = typer.Option(7, "--days", min=1, max=30),
) -> None:
    """Show weighted sensor averages over the trailing days."""
    state = _get_state(ctx)
    render_weekly(state.client.weekly_report(device_id, days))
