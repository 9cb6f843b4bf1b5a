"""Fixed-interval background timers with explicit handles."""

from __future__ import annotations

import logging
from threading import Event, Lock, Thread
from typing import Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs ``action`` every ``interval`` seconds on a daemon thread until stopped."""

    def __init__(self, name: str, interval: float, action: Callable[[], object]) -> None:
        self.name = name
        self.interval = interval
        self._action = action
        self._stopped = Event()
        self._thread = Thread(target=self._run, name=name, daemon=True)

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    def start(self) -> None:
        self._thread.start()

    def stop(self, wait: bool = False) -> None:
        self._stopped.set()
        if wait and self._thread.is_alive():
            self._thread.join(timeout=self.interval + 1.0)

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self._action()
            except Exception:
                logger.exception("Periodic task %s failed", self.name)


class TimerRegistry:
    """Handle map of periodic tasks keyed by owner (e.g. device id)."""

    def __init__(self) -> None:
        self._tasks: Dict[Hashable, PeriodicTask] = {}
        self._lock = Lock()

    def start(
        self,
        key: Hashable,
        interval: float,
        action: Callable[[], object],
        name: str | None = None,
    ) -> PeriodicTask:
        with self._lock:
            existing = self._tasks.get(key)
            if existing is not None:
                return existing
            task = PeriodicTask(name or f"timer-{key}", interval, action)
            self._tasks[key] = task
        task.start()
        return task

    def stop(self, key: Hashable) -> bool:
        with self._lock:
            task = self._tasks.pop(key, None)
        if task is None:
            return False
        task.stop()
        return True

    def stop_all(self) -> None:
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            task.stop()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)
