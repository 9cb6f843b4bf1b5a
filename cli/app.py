from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_device,
    render_device_table,
    render_events,
    render_poll_summary,
    render_predictions,
    render_readings,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the IoT telemetry simulator.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
devices_app = typer.Typer(help="Register, inspect and remove devices.")
app.add_typer(devices_app, name="devices")


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.find_object(CLIState)
    if state is None:
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
        help="Simulator API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@devices_app.command("list")
def list_command(
    ctx: typer.Context,
    device_type: Optional[str] = typer.Option(None, "--type", help="Filter by device type."),
    status: Optional[str] = typer.Option(None, "--status", help="Filter by device status."),
    lat: Optional[float] = typer.Option(None, "--lat", help="Latitude of the search centre."),
    lng: Optional[float] = typer.Option(None, "--lng", help="Longitude of the search centre."),
    radius: Optional[float] = typer.Option(None, "--radius", help="Search radius in km."),
) -> None:
    """List registered devices."""
    state = _get_state(ctx)
    devices = state.client.list_devices(
        {"type": device_type, "status": status, "lat": lat, "lng": lng, "radius": radius}
    )
    render_device_table(devices)


@devices_app.command("show")
def show_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
) -> None:
    """Show a device with its sensors' last readings."""
    state = _get_state(ctx)
    render_device(state.client.get_device(device_id))


@devices_app.command("register")
def register_command(
    ctx: typer.Context,
    spec: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Path to a JSON device spec."
    ),
) -> None:
    """Register a device from a JSON spec file."""
    state = _get_state(ctx)
    device = state.client.register_device(spec)
    typer.secho(f"Device registered. device_id={device.get('id')}", fg=typer.colors.GREEN)


@devices_app.command("remove")
def remove_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
) -> None:
    """Deregister a device."""
    state = _get_state(ctx)
    state.client.remove_device(device_id)
    typer.secho(f"Device {device_id} removed.", fg=typer.colors.GREEN)


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    sensor_id: Optional[str] = typer.Option(None, "--sensor", help="Only this sensor."),
    limit: Optional[int] = typer.Option(20, "--limit", min=1, help="Newest readings to show."),
) -> None:
    """Show the reading history of a device."""
    state = _get_state(ctx)
    render_readings(state.client.get_readings(device_id, sensor_id=sensor_id, limit=limit))


@app.command("poll")
def poll_command(ctx: typer.Context) -> None:
    """Trigger one poll cycle on the server."""
    state = _get_state(ctx)
    render_poll_summary(state.client.poll())


@app.command("events")
def events_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Newest events to show."),
) -> None:
    """Show recent anomaly, threshold and health-change events."""
    state = _get_state(ctx)
    render_events(state.client.get_events(limit))


@app.command("maintenance")
def maintenance_command(ctx: typer.Context) -> None:
    """Show predictive maintenance recommendations."""
    state = _get_state(ctx)
    render_predictions(state.client.get_predictions())
