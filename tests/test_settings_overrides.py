from __future__ import annotations

from typing import Iterable

from services.maintenance import build_default_maintenance
from services.telemetry import build_default_service
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


_CACHES = (get_settings, build_default_service, build_default_maintenance)


def test_defaults_without_environment(monkeypatch) -> None:
    for name in (
        "TELEMETRY_POLL_INTERVAL_SECONDS",
        "HEALTH_CHECK_INTERVAL_SECONDS",
        "READING_HISTORY_LIMIT",
        "SIMULATOR_SEED",
        "SIMULATOR_AUTOSTART",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    _clear_caches(_CACHES)

    try:
        settings = get_settings()
        assert settings.poll_interval == 5.0
        assert settings.health_check_interval == 30.0
        assert settings.history_limit == 1000
        assert settings.anomaly_window == 10
        assert settings.anomaly_min_samples == 5
        assert settings.anomaly_z_threshold == 2.0
        assert settings.simulator_seed is None
        assert settings.autostart is True
        assert settings.log_level == "INFO"
    finally:
        _clear_caches(_CACHES)


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("TELEMETRY_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("HEALTH_CHECK_INTERVAL_SECONDS", "12")
    monkeypatch.setenv("READING_HISTORY_LIMIT", "50")
    monkeypatch.setenv("DEVICE_UPTIME_PROBABILITY", "0.5")
    monkeypatch.setenv("FIRMWARE_UPDATE_SECONDS", "0")
    monkeypatch.setenv("SIMULATOR_SEED", "7")
    monkeypatch.setenv("SIMULATOR_AUTOSTART", "off")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    _clear_caches(_CACHES)

    service = build_default_service()
    maintenance = build_default_maintenance()

    try:
        settings = get_settings()
        assert settings.poll_interval == 0.5
        assert settings.health_check_interval == 12.0
        assert settings.uptime_probability == 0.5
        assert settings.simulator_seed == 7
        assert settings.autostart is False
        assert settings.log_level == "DEBUG"
        assert service.registry.history_limit == 50
        assert maintenance.telemetry is service
        assert maintenance.firmware_update_seconds == 0.0
    finally:
        service.shutdown()
        _clear_caches(_CACHES)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("TELEMETRY_POLL_INTERVAL_SECONDS", "soon")
    monkeypatch.setenv("READING_HISTORY_LIMIT", "-3")
    monkeypatch.setenv("DEVICE_UPTIME_PROBABILITY", "1.5")
    monkeypatch.setenv("SIMULATOR_SEED", "abc")
    monkeypatch.setenv("SIMULATOR_AUTOSTART", "maybe")
    _clear_caches(_CACHES)

    try:
        settings = get_settings()
        assert settings.poll_interval == 5.0
        assert settings.history_limit == 1000
        assert settings.uptime_probability == 0.95
        assert settings.simulator_seed is None
        assert settings.autostart is True
    finally:
        _clear_caches(_CACHES)
