"""Device registration, filtered lookup and the simulated telemetry loop."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Iterable, List, Optional
from uuid import uuid4

from datastore.device_registry import DeviceNotFoundError, DeviceRegistry
from models.events import AnomalyEvent, HealthChangeEvent, TelemetryEvent, ThresholdEvent
from models.records import (
    Calibration,
    Connectivity,
    Device,
    DeviceFilters,
    DeviceSpec,
    DeviceStatus,
    Firmware,
    Reading,
    ReadingQuality,
    Security,
    Sensor,
    SensorSpec,
)
from services.analytics import check_threshold, detect_anomaly, haversine_km
from services.events import EventBus, EventHandler, EventLog
from services.generator import Clock, ReadingGenerator, utc_now
from services.scheduler import PeriodicTask, TimerRegistry
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

CALIBRATION_WINDOW = timedelta(days=30)
CERTIFICATE_LIFETIME = timedelta(days=365)
INITIAL_FIRMWARE_VERSION = "1.0.0"
# Absorbs haversine rounding so a point exactly on the radius is kept.
RADIUS_TOLERANCE_KM = 1e-9


@dataclass
class PollSummary:
    devices_polled: int = 0
    readings_generated: int = 0
    anomalies: int = 0
    threshold_violations: int = 0
    processing_ms: int = 0

    @property
    def events_raised(self) -> int:
        return self.anomalies + self.threshold_violations


class TelemetryService:
    """Coordinates the registry, reading synthesis, analytics and timers."""

    def __init__(
        self,
        registry: DeviceRegistry,
        settings: Settings,
        generator: Optional[ReadingGenerator] = None,
        bus: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.registry = registry
        self.settings = settings
        self.rng = rng or random.Random(settings.simulator_seed)
        self.clock = clock
        self.generator = generator or ReadingGenerator(rng=self.rng, clock=clock)
        self.bus = bus or EventBus()
        self.event_log = EventLog(maxlen=settings.event_log_size)
        self.bus.subscribe_all(self.event_log)
        self.health_timers = TimerRegistry()
        self._poll_task: Optional[PeriodicTask] = None

    # Registration and lookup

    def register(self, spec: DeviceSpec) -> Device:
        """Create a device from ``spec``, store it and start its health-check timer."""
        now = self.clock()
        device = Device(
            id=str(uuid4()),
            type=spec.type,
            location=spec.location,
            status=DeviceStatus.online,
            sensors=[self._build_sensor(sensor_spec, now) for sensor_spec in spec.sensors],
            connectivity=Connectivity(
                type=spec.connectivity.type,
                strength=spec.connectivity.strength,
                protocol=spec.connectivity.protocol,
                last_seen=now,
            ),
            firmware=Firmware(version=INITIAL_FIRMWARE_VERSION, last_update=now),
            security=Security(
                encrypted=True,
                certificate_expiry=now + CERTIFICATE_LIFETIME,
                last_security_scan=now,
            ),
        )
        self.registry.put(device)
        self.health_timers.start(
            device.id,
            self.settings.health_check_interval,
            lambda device_id=device.id: self._scheduled_health_check(device_id),
            name=f"health-{device.id[:8]}",
        )
        logger.info(
            "Registered device",
            extra={
                "device_id": device.id,
                "status": device.status,
            },
        )
        return self.registry.get(device.id)

    def deregister(self, device_id: str) -> Device:
        """Stop the device's health-check timer and drop it with its history."""
        device = self.registry.remove(device_id)
        self.health_timers.stop(device_id)
        logger.info("Deregistered device", extra={"device_id": device_id})
        return device

    def get_device(self, device_id: str) -> Device:
        return self.registry.get(device_id)

    def get_readings(
        self,
        device_id: str,
        sensor_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Reading]:
        return self.registry.history(device_id, sensor_id=sensor_id, limit=limit)

    def list_devices(self, filters: Optional[DeviceFilters] = None) -> list[Device]:
        devices = self.registry.scan()
        if filters is None:
            return devices

        if filters.type is not None:
            devices = [device for device in devices if device.type == filters.type]
        if filters.status is not None:
            devices = [device for device in devices if device.status == filters.status]
        if filters.near is not None and filters.radius_km is not None:
            origin = filters.near
            radius = filters.radius_km
            devices = [
                device
                for device in devices
                if haversine_km(origin, device.location) <= radius + RADIUS_TOLERANCE_KM
            ]
        return devices

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        self.bus.subscribe(event_type, handler)

    def recent_events(self, limit: Optional[int] = None) -> List[TelemetryEvent]:
        return self.event_log.recent(limit)

    # Telemetry loop

    def poll_cycle(self) -> PollSummary:
        """Generate and evaluate one reading for every sensor of every online device."""
        start_time = time.perf_counter()
        summary = PollSummary()

        for device in self.registry.scan():
            if device.status is not DeviceStatus.online:
                continue
            try:
                self._collect(device, summary)
            except DeviceNotFoundError:
                # Deregistered while the cycle was running.
                continue
            summary.devices_polled += 1

        summary.processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(
            "Poll cycle finished",
            extra={
                "device_count": summary.devices_polled,
                "reading_count": summary.readings_generated,
                "event_count": summary.events_raised,
                "processing_ms": summary.processing_ms,
            },
        )
        return summary

    def check_device_health(self, device_id: str) -> DeviceStatus:
        """Simulate a connectivity probe; publishes an event when the status flips."""
        now = self.clock()
        is_online = self.rng.random() < self.settings.uptime_probability
        status = DeviceStatus.online if is_online else DeviceStatus.offline
        previous = self.registry.set_status(device_id, status, now)
        if previous is not status:
            logger.info(
                "Device health changed",
                extra={"device_id": device_id, "status": status},
            )
            self.bus.publish(
                HealthChangeEvent(
                    device_id=device_id,
                    previous_status=previous,
                    status=status,
                    checked_at=now,
                )
            )
        return status

    # Lifecycle

    def start(self) -> None:
        if self._poll_task is not None:
            return
        self._poll_task = PeriodicTask(
            "telemetry-poll", self.settings.poll_interval, self.poll_cycle
        )
        self._poll_task.start()
        logger.info("Telemetry polling started", extra={"device_count": len(self.registry)})

    @property
    def running(self) -> bool:
        return self._poll_task is not None and self._poll_task.running

    def shutdown(self) -> None:
        """Stop the poll timer and every per-device health-check timer."""
        if self._poll_task is not None:
            self._poll_task.stop()
            self._poll_task = None
        self.health_timers.stop_all()

    # Internals

    def _build_sensor(self, spec: SensorSpec, now: datetime) -> Sensor:
        sensor_id = str(uuid4())
        return Sensor(
            id=sensor_id,
            type=spec.type,
            unit=spec.unit,
            range=(spec.range[0], spec.range[1]),
            accuracy=spec.accuracy,
            last_reading=Reading(
                id=str(uuid4()),
                sensor_id=sensor_id,
                value=0.0,
                timestamp=now,
                quality=ReadingQuality.good,
            ),
            calibration=Calibration(
                last_calibrated=now,
                next_calibration=now + CALIBRATION_WINDOW,
            ),
        )

    def _collect(self, device: Device, summary: PollSummary) -> None:
        settings = self.settings
        for sensor in device.sensors:
            reading = self.generator.generate(device, sensor)
            window = [
                prior.value
                for prior in self.registry.history(
                    device.id, sensor_id=sensor.id, limit=settings.anomaly_window
                )
            ]
            self.registry.record_reading(device.id, sensor.id, reading)
            summary.readings_generated += 1

            for event in self._evaluate(device, sensor, reading, window):
                if isinstance(event, AnomalyEvent):
                    summary.anomalies += 1
                else:
                    summary.threshold_violations += 1
                self.bus.publish(event)

    def _evaluate(
        self,
        device: Device,
        sensor: Sensor,
        reading: Reading,
        window: List[float],
    ) -> Iterable[TelemetryEvent]:
        verdict = detect_anomaly(
            window,
            reading.value,
            min_samples=self.settings.anomaly_min_samples,
            z_threshold=self.settings.anomaly_z_threshold,
        )
        if verdict.anomalous:
            event = AnomalyEvent(
                device_id=device.id,
                sensor_id=sensor.id,
                sensor_type=sensor.type,
                reading=reading,
                mean=verdict.mean or 0.0,
                stddev=verdict.stddev or 0.0,
            )
            self._log_alert(event)
            yield event

        threshold = check_threshold(sensor.type, reading.value)
        if threshold is not None:
            event = ThresholdEvent(
                device_id=device.id,
                sensor_id=sensor.id,
                sensor_type=sensor.type,
                reading=reading,
                threshold=threshold,
            )
            self._log_alert(event)
            yield event

    @staticmethod
    def _log_alert(event: AnomalyEvent | ThresholdEvent) -> None:
        logger.warning(
            "IoT alert",
            extra={
                "event_kind": event.kind,
                "device_id": event.device_id,
                "sensor_id": event.sensor_id,
                "sensor_type": event.sensor_type,
                "severity": event.severity,
                "value": event.reading.value,
            },
        )

    def _scheduled_health_check(self, device_id: str) -> None:
        try:
            self.check_device_health(device_id)
        except DeviceNotFoundError:
            self.health_timers.stop(device_id)


@lru_cache
def build_default_service() -> TelemetryService:
    """Factory that wires the service with the configured registry."""
    settings = get_settings()
    registry = DeviceRegistry(history_limit=settings.history_limit)
    return TelemetryService(registry=registry, settings=settings)
