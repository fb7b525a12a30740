from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_fresh_data, render_sensors
from models.records import ProviderType, TimeRange


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the EnviroDash ingest service.",
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
        help="Seconds to wait for each request; fresh-data requests include upstream fetches.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("sensors")
def sensors_command(
    ctx: typer.Context,
    provider: Optional[ProviderType] = typer.Option(
        None, "--provider", "-p", help="Only list sensors of this provider."
    ),
    registered: bool = typer.Option(
        False,
        "--registered/--catalog",
        help="List sensors with stored readings instead of the catalog.",
    ),
) -> None:
    """List known sensors."""
    state = _get_state(ctx)
    payload = state.client.list_sensors(
        provider=provider.value if provider else None, registered=registered
    )
    render_sensors(payload)


@app.command("history")
def history_command(
    ctx: typer.Context,
    sensor_index: int = typer.Argument(..., help="PurpleAir sensor index."),
    start_timestamp: Optional[int] = typer.Option(
        None, "--start-timestamp", help="Epoch seconds to start the history window."
    ),
    average: Optional[int] = typer.Option(None, "--average", help="Averaging interval in minutes."),
    fields: Optional[str] = typer.Option(None, "--fields", help="Comma separated field names."),
    time_range: Optional[TimeRange] = typer.Option(None, "--range", help="Named lookback window."),
) -> None:
    """Fetch, store and display PurpleAir history for one sensor."""
    state = _get_state(ctx)
    typer.echo(f"Fetching PurpleAir sensor {sensor_index} from {state.config.base_url} ...")
    payload = state.client.purpleair_history(
        sensor_index,
        start_timestamp=start_timestamp,
        average=average,
        fields=fields,
        time_range=time_range.value if time_range else None,
    )
    render_fresh_data(payload)


@app.command("live")
def live_command(
    ctx: typer.Context,
    sensor_index: int = typer.Argument(..., help="AcuRite sensor index."),
    date: Optional[str] = typer.Argument(None, help="Day to fetch as YYYY-MM-DD (default today)."),
    time_range: Optional[TimeRange] = typer.Option(None, "--range", help="Named lookback window."),
) -> None:
    """Fetch, store and display AcuRite readings for one sensor."""
    state = _get_state(ctx)
    typer.echo(f"Fetching AcuRite sensor {sensor_index} from {state.config.base_url} ...")
    payload = state.client.acurite_live(
        sensor_index,
        date=date,
        time_range=time_range.value if time_range else None,
    )
    render_fresh_data(payload)
