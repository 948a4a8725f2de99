from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

import typer

from services.alerts import device_display_name, evaluate, status_for

_STATUS_COLORS = {
    "success": typer.colors.GREEN,
    "warning": typer.colors.YELLOW,
    "error": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Reading")
    echo_key_values(
        [
            ("id", payload.get("id")),
            ("deviceId", payload.get("deviceId")),
            ("timestamp", payload.get("timestamp")),
            ("nitrogen", payload.get("nitrogen")),
            ("phosphorus", payload.get("phosphorus")),
            ("ph", payload.get("ph")),
        ]
    )
    alert = evaluate(payload)
    if alert.triggered:
        typer.secho(
            f"alert: {alert.severity.value}",
            fg=_STATUS_COLORS[alert.severity.value],
        )
        for reason in alert.reasons:
            typer.echo(f"  - {reason}")


def render_readings(readings: Sequence[Dict[str, Any]], heading: str = "Readings") -> None:
    echo_heading(f"{heading} ({len(readings)})")
    if not readings:
        typer.echo("No readings found.")
        return
    for reading in readings:
        status = status_for(reading)
        typer.secho(
            (
                f"{reading.get('timestamp')}  {reading.get('deviceId')}  "
                f"N={reading.get('nitrogen')}  P={reading.get('phosphorus')}  pH={reading.get('ph')}"
            ),
            fg=_STATUS_COLORS[status],
        )


def render_stats(payload: Dict[str, Any]) -> None:
    echo_heading("Statistics")
    echo_key_values(
        [
            ("totalReadings", payload.get("totalReadings")),
            ("deviceCount", payload.get("deviceCount")),
        ]
    )


def render_alerts(readings: Sequence[Dict[str, Any]]) -> int:
    """Print triggered alerts for each reading and return how many fired."""
    echo_heading("Alerts")
    triggered = 0
    for reading in readings:
        alert = evaluate(reading)
        if not alert.triggered:
            continue
        triggered += 1
        device_id = reading.get("deviceId", "")
        typer.secho(
            f"[{alert.severity.value}] {device_display_name(device_id)} ({device_id})",
            fg=_STATUS_COLORS[alert.severity.value],
        )
        for reason in alert.reasons:
            typer.echo(f"  - {reason}")
    if not triggered:
        typer.secho("All devices within thresholds.", fg=typer.colors.GREEN)
    return triggered
