from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from conftest import FIXED_NOW, make_spec
from datastore.device_registry import DeviceNotFoundError
from models.records import ReadingQuality, Severity, Vulnerability
from services.maintenance import (
    MaintenanceService,
    device_health_score,
    estimate_time_to_failure,
    maintenance_recommendation,
    predict_maintenance,
    security_recommendations,
    security_score,
)
from services.telemetry import TelemetryService


class FixedRandom:
    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


def test_fresh_device_is_fully_healthy(service: TelemetryService) -> None:
    device = service.register(make_spec())

    assert device_health_score(device, FIXED_NOW) == 1.0
    assert predict_maintenance([device], FIXED_NOW) == []


def test_health_score_penalties(service: TelemetryService) -> None:
    device = service.register(make_spec())
    poor = replace(device.sensors[0].last_reading, quality=ReadingQuality.poor)
    device.sensors[0].last_reading = poor
    device.security.vulnerabilities = [
        Vulnerability(severity=Severity.critical, description="x", mitigation="y"),
    ]
    later = FIXED_NOW + timedelta(minutes=10)

    # stale (-0.2), one of two sensors poor (-0.15), one critical (-0.1)
    assert device_health_score(device, later) == pytest.approx(0.55)

    predictions = predict_maintenance([device], later)
    assert len(predictions) == 1
    prediction = predictions[0]
    assert prediction.device_id == device.id
    assert prediction.component == "sensor-array"
    assert prediction.probability == pytest.approx(0.45)
    assert prediction.time_to_failure_hours == pytest.approx(0.55 * 720)
    assert prediction.recommended_action == "Schedule maintenance within 1 week"


def test_health_score_is_floored_at_zero(service: TelemetryService) -> None:
    device = service.register(make_spec())
    device.security.vulnerabilities = [
        Vulnerability(severity=Severity.critical, description="x", mitigation="y")
        for _ in range(15)
    ]

    assert device_health_score(device, FIXED_NOW) == 0.0
    assert estimate_time_to_failure(0.0) == 1.0


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (0.1, "Immediate replacement required"),
        (0.4, "Schedule maintenance within 24 hours"),
        (0.6, "Schedule maintenance within 1 week"),
        (0.75, "Monitor closely"),
    ],
)
def test_maintenance_recommendation(score: float, expected: str) -> None:
    assert maintenance_recommendation(score) == expected


def test_security_score_and_recommendations() -> None:
    findings = [
        Vulnerability(severity=Severity.medium, description="a", mitigation="b"),
        Vulnerability(severity=Severity.critical, description="c", mitigation="d"),
    ]

    assert security_score([]) == 100
    assert security_score(findings) == 35
    assert security_score(findings * 3) == 0
    assert security_recommendations([]) == ["Enable automatic security updates"]
    assert len(security_recommendations(findings)) == 2


def test_security_scan_records_findings(service: TelemetryService) -> None:
    device = service.register(make_spec())
    maintenance = MaintenanceService(service, rng=FixedRandom(0.9))

    report = maintenance.security_scan(device.id)

    assert report.score == 85
    assert [vuln.description for vuln in report.vulnerabilities] == ["Outdated firmware version"]
    stored = service.get_device(device.id)
    assert stored.security.vulnerabilities == report.vulnerabilities
    assert stored.security.last_security_scan == FIXED_NOW


def test_security_scan_clean_device(service: TelemetryService) -> None:
    device = service.register(make_spec())
    maintenance = MaintenanceService(service, rng=FixedRandom(0.1))

    report = maintenance.security_scan(device.id)

    assert report.score == 100
    assert report.vulnerabilities == []
    assert report.recommendations == ["Enable automatic security updates"]


def test_update_firmware_defaults_to_latest(service: TelemetryService) -> None:
    device = service.register(make_spec())
    maintenance = MaintenanceService(service)

    updated = maintenance.update_firmware(device.id)

    assert updated.firmware.version == "2.1.0"
    assert updated.firmware.update_available is False
    assert service.get_device(device.id).firmware.version == "2.1.0"

    pinned = maintenance.update_firmware(device.id, version="3.0.0-rc1")
    assert pinned.firmware.version == "3.0.0-rc1"


def test_maintenance_operations_require_known_device(service: TelemetryService) -> None:
    maintenance = MaintenanceService(service)

    with pytest.raises(DeviceNotFoundError):
        maintenance.security_scan("missing")
    with pytest.raises(DeviceNotFoundError):
        maintenance.update_firmware("missing")
