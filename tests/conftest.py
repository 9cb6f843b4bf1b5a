from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterator

import pytest

from datastore.device_registry import DeviceRegistry
from models.records import (
    ConnectivitySpec,
    ConnectivityType,
    DeviceSpec,
    DeviceType,
    GeoLocation,
    SensorSpec,
    SensorType,
)
from services.telemetry import TelemetryService
from settings import Settings

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_settings(**overrides) -> Settings:
    base = Settings(
        poll_interval=5.0,
        health_check_interval=30.0,
        history_limit=1000,
        anomaly_window=10,
        anomaly_min_samples=5,
        anomaly_z_threshold=2.0,
        uptime_probability=0.95,
        firmware_update_seconds=0.0,
        event_log_size=500,
        simulator_seed=1234,
        autostart=False,
        log_level="INFO",
    )
    return replace(base, **overrides)


def make_spec(
    sensors: list[SensorSpec] | None = None,
    device_type: DeviceType = DeviceType.sensor,
    lat: float = 45.0,
    lng: float = -122.0,
) -> DeviceSpec:
    if sensors is None:
        sensors = [
            SensorSpec(SensorType.temperature, "°C", (-20.0, 50.0), 0.95),
            SensorSpec(SensorType.proximity, "occupied", (0.0, 1.0), 0.85),
        ]
    return DeviceSpec(
        type=device_type,
        location=GeoLocation(lat=lat, lng=lng),
        sensors=sensors,
        connectivity=ConnectivitySpec(ConnectivityType.lora, 75.0, "LoRaWAN"),
    )


def build_service(**overrides) -> TelemetryService:
    generator = overrides.pop("generator", None)
    settings = make_settings(**overrides)
    return TelemetryService(
        registry=DeviceRegistry(history_limit=settings.history_limit),
        settings=settings,
        generator=generator,
        rng=random.Random(settings.simulator_seed),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def service() -> Iterator[TelemetryService]:
    telemetry = build_service()
    try:
        yield telemetry
    finally:
        telemetry.shutdown()
