from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import typer

from cli.cache import LATEST_TAG, STATS_TAG
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alerts, render_reading, render_readings, render_stats


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the soil nutrient monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds before an HTTP request is abandoned.",
    ),
    cache_ttl: Optional[float] = typer.Option(
        None,
        "--cache-ttl",
        min=0,
        help="Seconds to reuse query results (defaults to CLI_CACHE_TTL or 30/30/60; 0 disables).",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Always fetch from the service.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        request_timeout=timeout,
        cache_ttl=cache_ttl,
        use_cache=not no_cache,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("submit")
def submit_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier, e.g. GH001."),
    nitrogen: float = typer.Option(..., "--nitrogen", "-n", help="Nitrogen in ppm."),
    phosphorus: float = typer.Option(..., "--phosphorus", "-p", help="Phosphorus in ppm."),
    ph: float = typer.Option(..., "--ph", help="pH value."),
    timestamp: Optional[str] = typer.Option(
        None,
        "--timestamp",
        "-t",
        help="ISO 8601 timestamp; the server uses the submission time when omitted.",
    ),
) -> None:
    """Submit a new sensor reading."""
    state = _get_state(ctx)
    payload = {
        "deviceId": device_id,
        "nitrogen": nitrogen,
        "phosphorus": phosphorus,
        "ph": ph,
    }
    if timestamp:
        payload["timestamp"] = timestamp
    reading = state.client.submit_reading(payload)
    typer.secho(f"Reading stored. id={reading.get('id')}", fg=typer.colors.GREEN)
    render_reading(reading)


@app.command("list")
def list_command(
    ctx: typer.Context,
    device_id: Optional[str] = typer.Option(None, "--device", "-d", help="Only this device."),
    start_date: Optional[str] = typer.Option(None, "--start", help="ISO 8601 lower bound."),
    end_date: Optional[str] = typer.Option(None, "--end", help="ISO 8601 upper bound."),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum rows (1-1000)."),
) -> None:
    """List readings, most recent first (last 24 hours by default)."""
    state = _get_state(ctx)
    readings = state.client.list_readings(
        {"deviceId": device_id, "startDate": start_date, "endDate": end_date, "limit": limit}
    )
    render_readings(readings)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading for each device."""
    state = _get_state(ctx)
    render_readings(state.client.latest_readings(), heading="Latest by device")


@app.command("stats")
def stats_command(ctx: typer.Context) -> None:
    """Show total readings and device count."""
    state = _get_state(ctx)
    render_stats(state.client.stats())


@app.command("show")
def show_command(
    ctx: typer.Context,
    reading_id: str = typer.Argument(..., help="Identifier returned by submit."),
) -> None:
    """Fetch a single reading by id."""
    state = _get_state(ctx)
    render_reading(state.client.get_reading(reading_id))


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    fail_on_alert: bool = typer.Option(
        False,
        "--fail-on-alert/--no-fail-on-alert",
        help="Exit with status 2 when any device is out of range.",
    ),
) -> None:
    """Evaluate alert thresholds over the latest reading of each device."""
    state = _get_state(ctx)
    triggered = render_alerts(state.client.latest_readings())
    if triggered and fail_on_alert:
        raise typer.Exit(code=2)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between refreshes (defaults to CLI_WATCH_INTERVAL or 10).",
    ),
    iterations: int = typer.Option(
        0,
        "--iterations",
        min=0,
        help="Stop after this many refreshes; 0 keeps polling until interrupted.",
    ),
) -> None:
    """Poll latest readings and statistics, printing alerts on each refresh."""
    state = _get_state(ctx)
    delay = interval if interval is not None else state.config.watch_interval
    count = 0
    while True:
        # Each refresh must reach the service, whatever the cache expiry.
        state.client.cache.invalidate(LATEST_TAG, STATS_TAG)
        render_stats(state.client.stats())
        typer.echo()
        render_alerts(state.client.latest_readings())
        count += 1
        if iterations and count >= iterations:
            return
        typer.echo()
        time.sleep(delay)
