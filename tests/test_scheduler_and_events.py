from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

import pytest

from models.events import AnomalyEvent, HealthChangeEvent, ThresholdEvent
from models.records import DeviceStatus
from services.events import EventBus, EventLog
from services.scheduler import PeriodicTask, TimerRegistry

_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _health_event(device_id: str = "device-1") -> HealthChangeEvent:
    return HealthChangeEvent(
        device_id=device_id,
        previous_status=DeviceStatus.online,
        status=DeviceStatus.offline,
        checked_at=_NOW,
    )


def test_periodic_task_runs_until_stopped() -> None:
    fired = threading.Event()
    calls: list[int] = []

    def action() -> None:
        calls.append(1)
        if len(calls) >= 3:
            fired.set()

    task = PeriodicTask("test-task", 0.01, action)
    task.start()
    try:
        assert fired.wait(timeout=5)
    finally:
        task.stop(wait=True)

    assert task.running is False
    assert len(calls) >= 3


def test_periodic_task_survives_failing_action(caplog) -> None:
    fired = threading.Event()
    attempts: list[int] = []

    def action() -> None:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")
        fired.set()

    task = PeriodicTask("flaky", 0.01, action)
    with caplog.at_level(logging.ERROR):
        task.start()
        try:
            assert fired.wait(timeout=5)
        finally:
            task.stop(wait=True)

    assert any("flaky" in record.getMessage() for record in caplog.records)


def test_timer_registry_keeps_one_handle_per_key() -> None:
    timers = TimerRegistry()
    try:
        first = timers.start("device-1", 60.0, lambda: None)
        second = timers.start("device-1", 60.0, lambda: None)
        timers.start("device-2", 60.0, lambda: None)

        assert first is second
        assert len(timers) == 2
        assert "device-1" in timers

        assert timers.stop("device-1") is True
        assert timers.stop("device-1") is False
        assert first.running is False
        assert len(timers) == 1
    finally:
        timers.stop_all()

    assert len(timers) == 0


def test_event_bus_dispatches_by_event_class() -> None:
    bus = EventBus()
    health: list[HealthChangeEvent] = []
    anomalies: list[AnomalyEvent] = []
    bus.subscribe(HealthChangeEvent, health.append)
    bus.subscribe(AnomalyEvent, anomalies.append)

    event = _health_event()
    bus.publish(event)

    assert health == [event]
    assert anomalies == []


def test_event_bus_rejects_unknown_event_types() -> None:
    bus = EventBus()

    with pytest.raises(TypeError):
        bus.subscribe(str, lambda event: None)
    with pytest.raises(TypeError):
        bus.publish("alert:anomaly")  # type: ignore[arg-type]


def test_event_bus_isolates_failing_handlers(caplog) -> None:
    bus = EventBus()
    received: list[HealthChangeEvent] = []

    def broken(_event) -> None:
        raise ValueError("handler failure")

    bus.subscribe(HealthChangeEvent, broken)
    bus.subscribe(HealthChangeEvent, received.append)

    with caplog.at_level(logging.ERROR):
        bus.publish(_health_event())

    assert len(received) == 1
    assert any(record.getMessage() == "Event handler failed" for record in caplog.records)


def test_event_log_is_bounded() -> None:
    log = EventLog(maxlen=3)
    bus = EventBus()
    bus.subscribe_all(log)

    for index in range(5):
        bus.publish(_health_event(device_id=f"device-{index}"))

    assert [event.device_id for event in log.recent()] == ["device-2", "device-3", "device-4"]
    assert [event.device_id for event in log.recent(1)] == ["device-4"]

    log.clear()
    assert log.recent() == []


def test_subscribe_all_covers_closed_event_set() -> None:
    bus = EventBus()
    seen: list[object] = []
    bus.subscribe_all(seen.append)

    bus.publish(_health_event())

    assert len(seen) == 1
    assert ThresholdEvent.kind == "threshold"
