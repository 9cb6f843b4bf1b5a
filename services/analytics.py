"""Pure analytics used by the poll cycle: distance, anomaly, threshold, quality."""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from models.events import Threshold
from models.records import GeoLocation, ReadingQuality, Sensor, SensorType, Severity

EARTH_RADIUS_KM = 6371.0

THRESHOLDS: Mapping[SensorType, Threshold] = MappingProxyType(
    {
        SensorType.temperature: Threshold(min=-10.0, max=40.0, severity=Severity.medium),
        SensorType.humidity: Threshold(min=20.0, max=80.0, severity=Severity.low),
        SensorType.motion: Threshold(min=0.0, max=80.0, severity=Severity.high),
        SensorType.microphone: Threshold(min=0.0, max=85.0, severity=Severity.medium),
    }
)


@dataclass(frozen=True)
class AnomalyVerdict:
    """Outcome of the rolling z-score test for one reading."""

    anomalous: bool
    mean: float | None = None
    stddev: float | None = None


def haversine_km(origin: GeoLocation, target: GeoLocation) -> float:
    d_lat = math.radians(target.lat - origin.lat)
    d_lng = math.radians(target.lng - origin.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin.lat))
        * math.cos(math.radians(target.lat))
        * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def detect_anomaly(
    window: Sequence[float],
    value: float,
    min_samples: int = 5,
    z_threshold: float = 2.0,
) -> AnomalyVerdict:
    """Flag ``value`` when it sits more than ``z_threshold`` deviations from the window mean.

    ``window`` holds the prior values only. Mean and population standard
    deviation are recomputed from scratch on every call.
    """
    if len(window) < min_samples:
        return AnomalyVerdict(anomalous=False)

    mean = sum(window) / len(window)
    variance = sum((sample - mean) ** 2 for sample in window) / len(window)
    stddev = math.sqrt(variance)
    anomalous = abs(value - mean) > z_threshold * stddev
    return AnomalyVerdict(anomalous=anomalous, mean=mean, stddev=stddev)


def check_threshold(sensor_type: SensorType, value: float) -> Optional[Threshold]:
    """Return the violated threshold for ``sensor_type``, or ``None`` when in band."""
    threshold = THRESHOLDS.get(sensor_type)
    if threshold is None or threshold.contains(value):
        return None
    return threshold


def assess_quality(value: float, sensor: Sensor) -> ReadingQuality:
    low, high = sensor.range
    within_range = low <= value <= high
    if not within_range:
        return ReadingQuality.poor
    if sensor.accuracy > 0.9:
        return ReadingQuality.excellent
    if sensor.accuracy > 0.8:
        return ReadingQuality.good
    if sensor.accuracy > 0.6:
        return ReadingQuality.fair
    return ReadingQuality.poor
