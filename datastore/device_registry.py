from __future__ import annotations

import copy
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, List, Optional

from models.records import Device, DeviceStatus, Reading


class DeviceNotFoundError(KeyError):
    """Raised when a device id is not present in the registry."""

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Device {device_id!r} not found.")
        self.device_id = device_id

    def __str__(self) -> str:
        return self.args[0]


class DeviceRegistry:
    """In-memory device records with a bounded reading history per device.

    Every write that touches a device takes that device's lock, so a reading
    being recorded and a status change on the same device never interleave.
    """

    def __init__(self, history_limit: int = 1000) -> None:
        self.history_limit = history_limit
        self._devices: Dict[str, Device] = {}
        self._histories: Dict[str, List[Reading]] = {}
        self._device_locks: Dict[str, Lock] = {}
        self._lock = Lock()

    def put(self, device: Device) -> None:
        with self._lock:
            self._devices[device.id] = copy.deepcopy(device)
            self._histories.setdefault(device.id, [])
            self._device_locks.setdefault(device.id, Lock())

    def get(self, device_id: str) -> Device:
        device, lock = self._resolve(device_id)
        with lock:
            return copy.deepcopy(device)

    def scan(self) -> list[Device]:
        """Return deep copies of all registered devices in registration order."""
        with self._lock:
            entries = [
                (device, self._device_locks[device_id])
                for device_id, device in self._devices.items()
            ]
        snapshot = []
        for device, lock in entries:
            with lock:
                snapshot.append(copy.deepcopy(device))
        return snapshot

    def remove(self, device_id: str) -> Device:
        with self._lock:
            device = self._devices.pop(device_id, None)
            if device is None:
                raise DeviceNotFoundError(device_id)
            self._histories.pop(device_id, None)
            self._device_locks.pop(device_id, None)
        return device

    def record_reading(self, device_id: str, sensor_id: str, reading: Reading) -> None:
        """Append ``reading`` to the history and make it the sensor's last reading."""
        device, lock = self._resolve(device_id)
        sensor = device.find_sensor(sensor_id)
        if sensor is None:
            raise KeyError(f"Sensor {sensor_id!r} not found on device {device_id!r}.")

        with lock:
            history = self._histories[device_id]
            history.append(reading)
            if len(history) > self.history_limit:
                del history[: len(history) - self.history_limit]
            sensor.last_reading = reading

    def set_status(
        self, device_id: str, status: DeviceStatus, seen_at: datetime
    ) -> DeviceStatus:
        """Update the device status and return the previous one."""
        device, lock = self._resolve(device_id)
        with lock:
            previous = device.status
            device.status = status
            if status is DeviceStatus.online:
                device.connectivity.last_seen = seen_at
            return previous

    def modify(self, device_id: str, mutate: Callable[[Device], None]) -> Device:
        """Apply ``mutate`` to the stored device under its lock and return a copy."""
        device, lock = self._resolve(device_id)
        with lock:
            mutate(device)
            return copy.deepcopy(device)

    def history(
        self,
        device_id: str,
        sensor_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Reading]:
        """Return readings oldest first, optionally for one sensor and only the newest ``limit``."""
        _, lock = self._resolve(device_id)
        with lock:
            readings = list(self._histories[device_id])
        if sensor_id is not None:
            readings = [reading for reading in readings if reading.sensor_id == sensor_id]
        if limit is not None:
            readings = readings[-limit:] if limit > 0 else []
        return readings

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        with self._lock:
            return device_id in self._devices

    def _resolve(self, device_id: str) -> tuple[Device, Lock]:
        with self._lock:
            device = self._devices.get(device_id)
            if device is None:
                raise DeviceNotFoundError(device_id)
            return device, self._device_locks[device_id]
