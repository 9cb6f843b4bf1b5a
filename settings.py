from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_POLL_INTERVAL_ENV = "TELEMETRY_POLL_INTERVAL_SECONDS"
_HEALTH_INTERVAL_ENV = "HEALTH_CHECK_INTERVAL_SECONDS"
_HISTORY_LIMIT_ENV = "READING_HISTORY_LIMIT"
_ANOMALY_WINDOW_ENV = "ANOMALY_WINDOW"
_ANOMALY_MIN_SAMPLES_ENV = "ANOMALY_MIN_SAMPLES"
_ANOMALY_Z_ENV = "ANOMALY_Z_THRESHOLD"
_UPTIME_ENV = "DEVICE_UPTIME_PROBABILITY"
_FIRMWARE_DELAY_ENV = "FIRMWARE_UPDATE_SECONDS"
_EVENT_LOG_SIZE_ENV = "EVENT_LOG_SIZE"
_SEED_ENV = "SIMULATOR_SEED"
_AUTOSTART_ENV = "SIMULATOR_AUTOSTART"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    poll_interval: float
    health_check_interval: float
    history_limit: int
    anomaly_window: int
    anomaly_min_samples: int
    anomaly_z_threshold: float
    uptime_probability: float
    firmware_update_seconds: float
    event_log_size: int
    simulator_seed: Optional[int]
    autostart: bool
    log_level: str


def _read_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    candidate = _read_env(name)
    if candidate is None:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_non_negative_float(name: str, default: float) -> float:
    candidate = _read_env(name)
    if candidate is None:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_positive_float(name: str, default: float) -> float:
    parsed = _read_non_negative_float(name, default)
    return parsed if parsed > 0 else default


def _read_probability(name: str, default: float) -> float:
    parsed = _read_non_negative_float(name, default)
    return parsed if parsed <= 1.0 else default


def _read_optional_int(name: str) -> Optional[int]:
    candidate = _read_env(name)
    if candidate is None:
        return None
    try:
        return int(candidate)
    except ValueError:
        return None


def _read_bool(name: str, default: bool) -> bool:
    candidate = _read_env(name)
    if candidate is None:
        return default
    lowered = candidate.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def _read_log_level(default: str) -> str:
    candidate = _read_env(_LOG_LEVEL_ENV)
    if candidate is None:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 5.0),
        health_check_interval=_read_positive_float(_HEALTH_INTERVAL_ENV, 30.0),
        history_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 1000),
        anomaly_window=_read_positive_int(_ANOMALY_WINDOW_ENV, 10),
        anomaly_min_samples=_read_positive_int(_ANOMALY_MIN_SAMPLES_ENV, 5),
        anomaly_z_threshold=_read_positive_float(_ANOMALY_Z_ENV, 2.0),
        uptime_probability=_read_probability(_UPTIME_ENV, 0.95),
        firmware_update_seconds=_read_non_negative_float(_FIRMWARE_DELAY_ENV, 2.0),
        event_log_size=_read_positive_int(_EVENT_LOG_SIZE_ENV, 500),
        simulator_seed=_read_optional_int(_SEED_ENV),
        autostart=_read_bool(_AUTOSTART_ENV, True),
        log_level=_read_log_level("INFO"),
    )
