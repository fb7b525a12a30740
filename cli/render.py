from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_READING_FIELDS = (
    "temperature",
    "humidity",
    "pressure",
    "pm25",
    "wind_speed",
    "wind_direction",
    "rainfall",
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _sensor_line(sensor: Dict[str, Any]) -> str:
    device = f" device={sensor['device_id']}" if sensor.get("device_id") else ""
    return (
        f"  - {sensor.get('sensor_index')} [{sensor.get('type')}] {sensor.get('name')} "
        f"({sensor.get('latitude')}, {sensor.get('longitude')}){device}"
    )


def render_sensors(payload: Any) -> None:
    if isinstance(payload, dict):
        for provider, sensors in payload.items():
            echo_heading(f"{provider} sensors ({len(sensors)})")
            for sensor in sensors:
                typer.echo(_sensor_line(sensor))
        return

    sensors: List[Dict[str, Any]] = list(payload or [])
    echo_heading(f"Sensors ({len(sensors)})")
    if not sensors:
        typer.echo("No sensors found.")
    for sensor in sensors:
        typer.echo(_sensor_line(sensor))


def _live_count(live: Dict[str, Any]) -> int:
    if "data" in live and isinstance(live.get("data"), list):
        return len(live["data"])
    lengths = [len(samples) for samples in live.values() if isinstance(samples, list)]
    return min(lengths) if lengths else 0


def render_fresh_data(payload: Dict[str, Any]) -> None:
    echo_heading("Sensor Data")
    live = payload.get("live") or {}
    historical = payload.get("historical") or []
    echo_key_values(
        [
            ("sensor_index", payload.get("sensor_index")),
            ("timestamp", payload.get("timestamp")),
            ("live_points", _live_count(live)),
            ("historical_rows", len(historical)),
        ]
    )

    typer.echo()
    echo_heading("Latest Reading")
    if not historical:
        typer.echo("No stored readings.")
        return
    latest = historical[0]
    pairs = [("timestamp", latest.get("timestamp"))]
    pairs.extend(
        (name, latest.get(name)) for name in _READING_FIELDS if latest.get(name) is not None
    )
    echo_key_values(pairs)
