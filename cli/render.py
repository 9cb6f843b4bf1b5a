from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_device_table(devices: List[Dict[str, Any]]) -> None:
    echo_heading(f"Devices ({len(devices)})")
    if not devices:
        typer.echo("No devices registered.")
        return
    for device in devices:
        location = device.get("location") or {}
        typer.echo(
            f"  - {device.get('id')} [{device.get('type')}] {device.get('status')} "
            f"@ {location.get('lat')},{location.get('lng')} "
            f"sensors={len(device.get('sensors') or [])}"
        )


def render_device(device: Dict[str, Any]) -> None:
    echo_heading("Device")
    location = device.get("location") or {}
    firmware = device.get("firmware") or {}
    connectivity = device.get("connectivity") or {}
    echo_key_values(
        [
            ("id", device.get("id")),
            ("type", device.get("type")),
            ("status", device.get("status")),
            ("location", f"{location.get('lat')},{location.get('lng')}"),
            ("connectivity", f"{connectivity.get('type')} {connectivity.get('protocol')}"),
            ("last_seen", connectivity.get("last_seen")),
            ("firmware", firmware.get("version")),
        ]
    )

    typer.echo()
    echo_heading("Sensors")
    sensors = device.get("sensors") or []
    if not sensors:
        typer.echo("No sensors.")
    for sensor in sensors:
        reading = sensor.get("last_reading") or {}
        typer.echo(
            f"  - {sensor.get('id')} {sensor.get('type')} "
            f"{reading.get('value')} {sensor.get('unit')} ({reading.get('quality')})"
        )


def render_readings(readings: List[Dict[str, Any]]) -> None:
    echo_heading(f"Readings ({len(readings)})")
    for reading in readings:
        typer.echo(
            f"  - {reading.get('timestamp')} sensor={reading.get('sensor_id')} "
            f"value={reading.get('value')} quality={reading.get('quality')}"
        )


def render_poll_summary(summary: Dict[str, Any]) -> None:
    echo_heading("Poll Cycle")
    echo_key_values(
        [
            ("devices_polled", summary.get("devices_polled")),
            ("readings_generated", summary.get("readings_generated")),
            ("anomalies", summary.get("anomalies")),
            ("threshold_violations", summary.get("threshold_violations")),
            ("processing_ms", summary.get("processing_ms")),
        ]
    )


def render_events(events: List[Dict[str, Any]]) -> None:
    echo_heading(f"Events ({len(events)})")
    if not events:
        typer.echo("No events recorded.")
        return
    for event in events:
        kind = event.get("kind")
        if kind == "health-change":
            detail = f"{event.get('previous_status')} -> {event.get('status')}"
        else:
            detail = (
                f"{event.get('sensor_type')} value={event.get('value')} "
                f"severity={event.get('severity')}"
            )
        typer.echo(f"  - {event.get('occurred_at')} [{kind}] {event.get('device_id')} {detail}")


def render_predictions(predictions: List[Dict[str, Any]]) -> None:
    echo_heading("Maintenance Predictions")
    if not predictions:
        typer.echo("All devices healthy.")
        return
    for item in predictions:
        typer.echo(
            f"  - {item.get('device_id')} p={item.get('probability')} "
            f"ttf={item.get('time_to_failure_hours')}h: {item.get('recommended_action')}"
        )
