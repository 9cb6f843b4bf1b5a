"""Preset sensor packs for bulk city deployments."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from models.records import (
    ConnectivitySpec,
    ConnectivityType,
    Device,
    DeviceSpec,
    DeviceType,
    GeoLocation,
    SensorSpec,
    SensorType,
)
from services.telemetry import TelemetryService


class EnvironmentalProfile(str, Enum):
    air_quality = "air-quality"
    noise = "noise"
    weather = "weather"


@dataclass(slots=True)
class Site:
    lat: float
    lng: float
    name: Optional[str] = None

    def location(self) -> GeoLocation:
        return GeoLocation(lat=self.lat, lng=self.lng, address=self.name)


TRAFFIC_SENSORS: Sequence[SensorSpec] = (
    SensorSpec(SensorType.camera, "fps", (0.0, 60.0), 0.95),
    SensorSpec(SensorType.motion, "vehicles/min", (0.0, 100.0), 0.9),
    SensorSpec(SensorType.proximity, "meters", (0.0, 50.0), 0.8),
)

PARKING_SENSORS: Sequence[SensorSpec] = (
    SensorSpec(SensorType.proximity, "occupied", (0.0, 1.0), 0.95),
    SensorSpec(SensorType.camera, "fps", (0.0, 30.0), 0.9),
)

ENVIRONMENTAL_SENSORS = {
    EnvironmentalProfile.air_quality: (
        SensorSpec(SensorType.temperature, "°C", (-20.0, 50.0), 0.5),
        SensorSpec(SensorType.humidity, "%", (0.0, 100.0), 2.0),
        SensorSpec(SensorType.pressure, "hPa", (900.0, 1100.0), 1.0),
    ),
    EnvironmentalProfile.noise: (
        SensorSpec(SensorType.microphone, "dB", (30.0, 120.0), 1.0),
    ),
    EnvironmentalProfile.weather: (
        SensorSpec(SensorType.temperature, "°C", (-40.0, 60.0), 0.1),
        SensorSpec(SensorType.humidity, "%", (0.0, 100.0), 1.0),
        SensorSpec(SensorType.pressure, "hPa", (800.0, 1200.0), 0.5),
    ),
}

TRAFFIC_LINK = ConnectivitySpec(ConnectivityType.cellular, 85.0, "5G")
PARKING_LINK = ConnectivitySpec(ConnectivityType.lora, 75.0, "LoRaWAN")
ENVIRONMENTAL_LINK = ConnectivitySpec(ConnectivityType.wifi, 80.0, "WiFi 6")


def _copy_sensors(specs: Iterable[SensorSpec]) -> List[SensorSpec]:
    return [SensorSpec(spec.type, spec.unit, spec.range, spec.accuracy) for spec in specs]


def _copy_link(link: ConnectivitySpec) -> ConnectivitySpec:
    return ConnectivitySpec(link.type, link.strength, link.protocol)


def deploy_traffic_sensors(service: TelemetryService, intersections: Iterable[Site]) -> list[Device]:
    return [
        service.register(
            DeviceSpec(
                type=DeviceType.sensor,
                location=site.location(),
                sensors=_copy_sensors(TRAFFIC_SENSORS),
                connectivity=_copy_link(TRAFFIC_LINK),
            )
        )
        for site in intersections
    ]


def deploy_parking_sensors(service: TelemetryService, spots: Iterable[Site]) -> list[Device]:
    return [
        service.register(
            DeviceSpec(
                type=DeviceType.sensor,
                location=spot.location(),
                sensors=_copy_sensors(PARKING_SENSORS),
                connectivity=_copy_link(PARKING_LINK),
            )
        )
        for spot in spots
    ]


def deploy_environmental_sensors(
    service: TelemetryService,
    sites: Iterable[tuple[Site, EnvironmentalProfile]],
) -> list[Device]:
    devices = []
    for site, profile in sites:
        devices.append(
            service.register(
                DeviceSpec(
                    type=DeviceType.sensor,
                    location=site.location(),
                    sensors=_copy_sensors(ENVIRONMENTAL_SENSORS.get(profile, ())),
                    connectivity=_copy_link(ENVIRONMENTAL_LINK),
                )
            )
        )
    return devices
