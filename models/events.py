"""Telemetry events published by the simulator.

The set of event kinds is closed: every event is one of the classes in
``EVENT_TYPES``. Subscribers register against a class, never a string.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple, Union

from models.records import DeviceStatus, Reading, SensorType, Severity


@dataclass(frozen=True, slots=True)
class Threshold:
    min: float
    max: float
    severity: Severity

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True, slots=True)
class AnomalyEvent:
    device_id: str
    sensor_id: str
    sensor_type: SensorType
    reading: Reading
    mean: float
    stddev: float
    severity: Severity = Severity.medium

    kind = "anomaly"


@dataclass(frozen=True, slots=True)
class ThresholdEvent:
    device_id: str
    sensor_id: str
    sensor_type: SensorType
    reading: Reading
    threshold: Threshold

    kind = "threshold"

    @property
    def severity(self) -> Severity:
        return self.threshold.severity


@dataclass(frozen=True, slots=True)
class HealthChangeEvent:
    device_id: str
    previous_status: DeviceStatus
    status: DeviceStatus
    checked_at: datetime

    kind = "health-change"


TelemetryEvent = Union[AnomalyEvent, ThresholdEvent, HealthChangeEvent]

EVENT_TYPES: Tuple[type, ...] = (AnomalyEvent, ThresholdEvent, HealthChangeEvent)
