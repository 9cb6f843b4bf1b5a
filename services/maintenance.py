"""Predictive maintenance, simulated security scans and firmware updates."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Dict, Iterable, List, Optional

from models.records import Device, DeviceType, ReadingQuality, Severity, Vulnerability
from services.generator import Clock
from services.telemetry import TelemetryService, build_default_service
from settings import get_settings

logger = logging.getLogger(__name__)

HEALTH_ALERT_BELOW = 0.8
STALE_AFTER = timedelta(minutes=5)
HOURS_AT_FULL_HEALTH = 720.0

SECURITY_PENALTIES: Dict[Severity, int] = {
    Severity.low: 5,
    Severity.medium: 15,
    Severity.high: 30,
    Severity.critical: 50,
}

LATEST_FIRMWARE_VERSION = "2.1.0"


@dataclass
class MaintenancePrediction:
    device_id: str
    component: str
    probability: float
    time_to_failure_hours: float
    recommended_action: str


@dataclass
class SecurityReport:
    device_id: str
    score: int
    vulnerabilities: List[Vulnerability] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def device_health_score(device: Device, now: datetime) -> float:
    score = 1.0

    if now - device.connectivity.last_seen > STALE_AFTER:
        score -= 0.2

    if device.sensors:
        failing = sum(
            1 for sensor in device.sensors if sensor.last_reading.quality is ReadingQuality.poor
        )
        score -= (failing / len(device.sensors)) * 0.3

    critical = sum(
        1 for vuln in device.security.vulnerabilities if vuln.severity is Severity.critical
    )
    score -= critical * 0.1

    return max(0.0, score)


def estimate_time_to_failure(health_score: float) -> float:
    """Hours until failure; full health maps to 30 days."""
    return max(1.0, health_score * HOURS_AT_FULL_HEALTH)


def maintenance_recommendation(health_score: float) -> str:
    if health_score < 0.3:
        return "Immediate replacement required"
    if health_score < 0.5:
        return "Schedule maintenance within 24 hours"
    if health_score < 0.7:
        return "Schedule maintenance within 1 week"
    return "Monitor closely"


def predict_maintenance(devices: Iterable[Device], now: datetime) -> list[MaintenancePrediction]:
    predictions = []
    for device in devices:
        score = device_health_score(device, now)
        if score >= HEALTH_ALERT_BELOW:
            continue
        predictions.append(
            MaintenancePrediction(
                device_id=device.id,
                component="sensor-array",
                probability=1.0 - score,
                time_to_failure_hours=estimate_time_to_failure(score),
                recommended_action=maintenance_recommendation(score),
            )
        )
    return predictions


def latest_firmware_version(device_type: DeviceType) -> str:
    """Every device type currently ships the same firmware line."""
    return LATEST_FIRMWARE_VERSION


def security_score(vulnerabilities: Iterable[Vulnerability]) -> int:
    score = 100
    for vuln in vulnerabilities:
        score -= SECURITY_PENALTIES.get(vuln.severity, 0)
    return max(0, score)


def security_recommendations(vulnerabilities: Iterable[Vulnerability]) -> list[str]:
    recommendations = ["Enable automatic security updates"]
    if any(vuln.severity is Severity.critical for vuln in vulnerabilities):
        recommendations.append("Isolate device until critical vulnerabilities are patched")
    return recommendations


class MaintenanceService:
    """Device upkeep operations layered over the telemetry registry."""

    def __init__(
        self,
        telemetry: TelemetryService,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
        firmware_update_seconds: float = 0.0,
    ) -> None:
        self.telemetry = telemetry
        self.rng = rng or telemetry.rng
        self.clock = clock or telemetry.clock
        self.firmware_update_seconds = firmware_update_seconds

    def predict(self) -> list[MaintenancePrediction]:
        return predict_maintenance(self.telemetry.list_devices(), self.clock())

    def security_scan(self, device_id: str) -> SecurityReport:
        # Raises DeviceNotFoundError before any simulated work happens.
        self.telemetry.get_device(device_id)

        vulnerabilities: list[Vulnerability] = []
        if self.rng.random() > 0.8:
            vulnerabilities.append(
                Vulnerability(
                    severity=Severity.medium,
                    description="Outdated firmware version",
                    mitigation="Update to latest firmware version",
                )
            )

        scanned_at = self.clock()

        def apply(device: Device) -> None:
            device.security.last_security_scan = scanned_at
            device.security.vulnerabilities = list(vulnerabilities)

        self.telemetry.registry.modify(device_id, apply)
        report = SecurityReport(
            device_id=device_id,
            score=security_score(vulnerabilities),
            vulnerabilities=vulnerabilities,
            recommendations=security_recommendations(vulnerabilities),
        )
        logger.info(
            "Security scan completed",
            extra={"device_id": device_id, "event_count": len(vulnerabilities)},
        )
        return report

    def update_firmware(self, device_id: str, version: Optional[str] = None) -> Device:
        device = self.telemetry.get_device(device_id)
        target = version or latest_firmware_version(device.type)
        logger.info(
            "Updating firmware to %s",
            target,
            extra={"device_id": device_id},
        )

        if self.firmware_update_seconds > 0:
            time.sleep(self.firmware_update_seconds)

        updated_at = self.clock()

        def apply(stored: Device) -> None:
            stored.firmware.version = target
            stored.firmware.last_update = updated_at
            stored.firmware.update_available = False

        return self.telemetry.registry.modify(device_id, apply)


@lru_cache
def build_default_maintenance() -> MaintenanceService:
    settings = get_settings()
    return MaintenanceService(
        build_default_service(),
        firmware_update_seconds=settings.firmware_update_seconds,
    )
