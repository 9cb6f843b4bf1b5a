"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from models.events import AnomalyEvent, HealthChangeEvent, TelemetryEvent, ThresholdEvent
from models.records import (
    ConnectivitySpec,
    ConnectivityType,
    DeviceSpec,
    DeviceStatus,
    DeviceType,
    GeoLocation,
    ReadingQuality,
    SensorSpec,
    SensorType,
    Severity,
)
from services.deployments import EnvironmentalProfile, Site


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class GeoLocationModel(_FromDomain):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None

    def to_domain(self) -> GeoLocation:
        return GeoLocation(lat=self.lat, lng=self.lng, address=self.address)


class GeoLocationOut(_FromDomain):
    lat: float
    lng: float
    address: Optional[str] = None


class SensorSpecIn(BaseModel):
    type: SensorType
    unit: str
    range: Tuple[float, float] = Field(..., description="Declared [low, high] value range.")
    accuracy: float

    def to_domain(self) -> SensorSpec:
        return SensorSpec(type=self.type, unit=self.unit, range=self.range, accuracy=self.accuracy)


class ConnectivitySpecIn(BaseModel):
    type: ConnectivityType
    strength: float
    protocol: str

    def to_domain(self) -> ConnectivitySpec:
        return ConnectivitySpec(type=self.type, strength=self.strength, protocol=self.protocol)


class DeviceSpecIn(BaseModel):
    """Registration payload for a new device."""

    type: DeviceType
    location: GeoLocationModel
    sensors: List[SensorSpecIn] = Field(default_factory=list)
    connectivity: ConnectivitySpecIn

    def to_domain(self) -> DeviceSpec:
        return DeviceSpec(
            type=self.type,
            location=self.location.to_domain(),
            sensors=[sensor.to_domain() for sensor in self.sensors],
            connectivity=self.connectivity.to_domain(),
        )


class ReadingOut(_FromDomain):
    id: str
    sensor_id: str
    value: float
    timestamp: datetime
    quality: ReadingQuality
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CalibrationOut(_FromDomain):
    last_calibrated: datetime
    next_calibration: datetime
    offset: float
    scale: float


class SensorOut(_FromDomain):
    id: str
    type: SensorType
    unit: str
    range: Tuple[float, float]
    accuracy: float
    last_reading: ReadingOut
    calibration: CalibrationOut


class ConnectivityOut(_FromDomain):
    type: ConnectivityType
    strength: float
    protocol: str
    last_seen: datetime
    data_usage: int


class FirmwareOut(_FromDomain):
    version: str
    last_update: datetime
    update_available: bool
    auto_update: bool


class VulnerabilityOut(_FromDomain):
    severity: Severity
    description: str
    mitigation: str
    cve: Optional[str] = None


class SecurityOut(_FromDomain):
    encrypted: bool
    certificate_expiry: datetime
    last_security_scan: datetime
    vulnerabilities: List[VulnerabilityOut] = Field(default_factory=list)


class DeviceOut(_FromDomain):
    """Full device record as exposed over HTTP."""

    id: str
    type: DeviceType
    location: GeoLocationOut
    status: DeviceStatus
    sensors: List[SensorOut]
    connectivity: ConnectivityOut
    firmware: FirmwareOut
    security: SecurityOut


class PollSummaryOut(_FromDomain):
    devices_polled: int = Field(..., ge=0)
    readings_generated: int = Field(..., ge=0)
    anomalies: int = Field(..., ge=0)
    threshold_violations: int = Field(..., ge=0)
    processing_ms: int = Field(..., ge=0)


class HealthCheckOut(BaseModel):
    device_id: str
    status: DeviceStatus


class EventOut(BaseModel):
    """Flattened view of a telemetry event; fields not used by a kind are null."""

    kind: str
    device_id: str
    sensor_id: Optional[str] = None
    sensor_type: Optional[SensorType] = None
    severity: Optional[Severity] = None
    value: Optional[float] = None
    mean: Optional[float] = None
    stddev: Optional[float] = None
    threshold_min: Optional[float] = None
    threshold_max: Optional[float] = None
    previous_status: Optional[DeviceStatus] = None
    status: Optional[DeviceStatus] = None
    occurred_at: datetime

    @classmethod
    def from_event(cls, event: TelemetryEvent) -> "EventOut":
        if isinstance(event, AnomalyEvent):
            return cls(
                kind=event.kind,
                device_id=event.device_id,
                sensor_id=event.sensor_id,
                sensor_type=event.sensor_type,
                severity=event.severity,
                value=event.reading.value,
                mean=event.mean,
                stddev=event.stddev,
                occurred_at=event.reading.timestamp,
            )
        if isinstance(event, ThresholdEvent):
            return cls(
                kind=event.kind,
                device_id=event.device_id,
                sensor_id=event.sensor_id,
                sensor_type=event.sensor_type,
                severity=event.severity,
                value=event.reading.value,
                threshold_min=event.threshold.min,
                threshold_max=event.threshold.max,
                occurred_at=event.reading.timestamp,
            )
        if isinstance(event, HealthChangeEvent):
            return cls(
                kind=event.kind,
                device_id=event.device_id,
                previous_status=event.previous_status,
                status=event.status,
                occurred_at=event.checked_at,
            )
        raise TypeError(f"Unsupported event {event!r}.")


class MaintenancePredictionOut(_FromDomain):
    device_id: str
    component: str
    probability: float = Field(..., ge=0, le=1)
    time_to_failure_hours: float
    recommended_action: str


class SecurityReportOut(_FromDomain):
    device_id: str
    score: int = Field(..., ge=0, le=100)
    vulnerabilities: List[VulnerabilityOut] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class FirmwareUpdateRequest(BaseModel):
    version: Optional[str] = Field(
        default=None, description="Target version; defaults to the latest for the device type."
    )


class SiteIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    name: Optional[str] = None

    def to_domain(self) -> Site:
        return Site(lat=self.lat, lng=self.lng, name=self.name)


class EnvironmentalSiteIn(SiteIn):
    profile: EnvironmentalProfile


class SiteDeploymentRequest(BaseModel):
    sites: List[SiteIn] = Field(..., min_length=1)


class EnvironmentalDeploymentRequest(BaseModel):
    sites: List[EnvironmentalSiteIn] = Field(..., min_length=1)
