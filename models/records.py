"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DeviceType(str, Enum):
    camera = "camera"
    sensor = "sensor"
    beacon = "beacon"
    scanner = "scanner"
    display = "display"
    printer = "printer"
    gateway = "gateway"
    vehicle_unit = "vehicle-unit"


class SensorType(str, Enum):
    temperature = "temperature"
    humidity = "humidity"
    pressure = "pressure"
    motion = "motion"
    proximity = "proximity"
    gps = "gps"
    accelerometer = "accelerometer"
    camera = "camera"
    microphone = "microphone"


class ConnectivityType(str, Enum):
    wifi = "wifi"
    cellular = "cellular"
    bluetooth = "bluetooth"
    lora = "lora"
    zigbee = "zigbee"


class DeviceStatus(str, Enum):
    online = "online"
    offline = "offline"
    maintenance = "maintenance"
    error = "error"


class ReadingQuality(str, Enum):
    excellent = "excellent"
    good = "good"
    fair = "fair"
    poor = "poor"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


@dataclass(slots=True)
class GeoLocation:
    lat: float
    lng: float
    address: Optional[str] = None


@dataclass(slots=True)
class SensorSpec:
    """Registration input for a single sensor."""

    type: SensorType
    unit: str
    range: Tuple[float, float]
    accuracy: float


@dataclass(slots=True)
class ConnectivitySpec:
    type: ConnectivityType
    strength: float
    protocol: str


@dataclass(slots=True)
class DeviceSpec:
    """Registration input for a device; nothing here is validated."""

    type: DeviceType
    location: GeoLocation
    sensors: List[SensorSpec]
    connectivity: ConnectivitySpec


@dataclass(frozen=True, slots=True)
class Reading:
    """A single timestamped, quality-tagged sensor value."""

    id: str
    sensor_id: str
    value: float
    timestamp: datetime
    quality: ReadingQuality
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Calibration:
    last_calibrated: datetime
    next_calibration: datetime
    offset: float = 0.0
    scale: float = 1.0


@dataclass(slots=True)
class Sensor:
    id: str
    type: SensorType
    unit: str
    range: Tuple[float, float]
    accuracy: float
    last_reading: Reading
    calibration: Calibration


@dataclass(slots=True)
class Connectivity:
    type: ConnectivityType
    strength: float
    protocol: str
    last_seen: datetime
    data_usage: int = 0


@dataclass(slots=True)
class Firmware:
    version: str
    last_update: datetime
    update_available: bool = False
    auto_update: bool = True


@dataclass(slots=True)
class Vulnerability:
    severity: Severity
    description: str
    mitigation: str
    cve: Optional[str] = None


@dataclass(slots=True)
class Security:
    encrypted: bool
    certificate_expiry: datetime
    last_security_scan: datetime
    vulnerabilities: List[Vulnerability] = field(default_factory=list)


@dataclass(slots=True)
class Device:
    id: str
    type: DeviceType
    location: GeoLocation
    status: DeviceStatus
    sensors: List[Sensor]
    connectivity: Connectivity
    firmware: Firmware
    security: Security

    def find_sensor(self, sensor_id: str) -> Optional[Sensor]:
        for sensor in self.sensors:
            if sensor.id == sensor_id:
                return sensor
        return None


@dataclass(slots=True)
class DeviceFilters:
    """Independent predicates applied by ``list_devices``; ``None`` disables one."""

    type: Optional[DeviceType] = None
    status: Optional[DeviceStatus] = None
    near: Optional[GeoLocation] = None
    radius_km: Optional[float] = None
