"""Synthesizes sensor readings for the simulator."""

from __future__ import annotations

import math
import random
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

from models.records import Device, Reading, Sensor, SensorType
from services.analytics import assess_quality

Clock = Callable[[], datetime]

NOISE_RATIO = 0.05
_SECONDS_PER_DAY = 86400.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ReadingGenerator:
    """Produces clamped, noisy readings from a type-dependent base value."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.rng = rng or random.Random()
        self.clock = clock

    def base_value(self, sensor_type: SensorType) -> float:
        rng = self.rng
        if sensor_type is SensorType.temperature:
            # Daily cycle around 20 degrees.
            return 20.0 + math.sin(self.clock().timestamp() / _SECONDS_PER_DAY) * 10.0
        if sensor_type is SensorType.humidity:
            return 50.0 + rng.random() * 30.0
        if sensor_type is SensorType.pressure:
            return 1013.0 + rng.random() * 20.0 - 10.0
        if sensor_type is SensorType.motion:
            return rng.random() * 50.0
        if sensor_type is SensorType.proximity:
            return 1.0 if rng.random() > 0.7 else 0.0
        if sensor_type is SensorType.camera:
            return 30.0
        if sensor_type is SensorType.microphone:
            return 40.0 + rng.random() * 40.0
        return rng.random() * 100.0

    def generate(self, device: Device, sensor: Sensor) -> Reading:
        base = self.base_value(sensor.type)
        noise = base * self.rng.uniform(-NOISE_RATIO, NOISE_RATIO)
        low, high = sensor.range
        value = clamp(base + noise, low, high)
        return Reading(
            id=str(uuid4()),
            sensor_id=sensor.id,
            value=value,
            timestamp=self.clock(),
            quality=assess_quality(value, sensor),
            metadata={
                "device_id": device.id,
                "sensor_type": sensor.type.value,
                "location": {"lat": device.location.lat, "lng": device.location.lng},
                "connectivity": device.connectivity.strength,
            },
        )
