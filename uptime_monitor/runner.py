from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable

from uptime_monitor.checks.dispatch import run_check
from uptime_monitor.checks.results import CheckResult
from uptime_monitor.errors import PersistenceError
from uptime_monitor.formatting import format_result
from uptime_monitor.models import CheckConfig, CheckStatus, ProbeConfig
from uptime_monitor.state import ResultSink

logger = logging.getLogger(__name__)

Probe = Callable[[ProbeConfig], CheckResult]


def next_fire_time(scheduled: float, now: float, interval_s: float) -> tuple[float, int]:
    """Next grid point after ``scheduled`` that is still in the future.

    Returns the new fire time and how many ticks were skipped because the
    previous probe overran them.
    """
    nxt = scheduled + interval_s
    if nxt > now:
        return nxt, 0
    skipped = int((now - nxt) // interval_s) + 1
    return nxt + skipped * interval_s, skipped


class ServiceTask:
    """One service's schedule: a thread that probes every ``interval_s``."""

    def __init__(
        self,
        config: CheckConfig,
        sink: ResultSink,
        probe: Probe = run_check,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._sink = sink
        self._probe = probe
        self._clock = clock
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f"uptime-{config.service_id}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        interval = float(self.config.interval_s)
        fire_at = self._clock() + interval
        while not self._stop.wait(max(0.0, fire_at - self._clock())):
            self.tick()
            fire_at, skipped = next_fire_time(fire_at, self._clock(), interval)
            if skipped:
                logger.debug(
                    "Service %s probe overran its interval, dropped %d tick(s)",
                    self.config.service_id,
                    skipped,
                )

    def tick(self) -> CheckResult:
        result = self._probe(self.config)
        if result.status is CheckStatus.DOWN:
            logger.warning(format_result(self.config, result))

        try:
            self._sink.append(result)
        except PersistenceError as exc:
            logger.error("Could not save check result for service %s: %s", result.service_id, exc)
        except Exception:
            logger.exception("Unexpected error saving result for service %s", result.service_id)
        return result


class Scheduler:
    def __init__(self, sink: ResultSink, probe: Probe = run_check) -> None:
        self._sink = sink
        self._probe = probe
        self._tasks: list[ServiceTask] = []
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        with self._lock:
            return bool(self._tasks)

    def running_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._tasks if t.is_alive())

    def start(self, configs: Iterable[CheckConfig]) -> int:
        with self._lock:
            if self._tasks:
                raise RuntimeError("scheduler is already running")
            tasks = [ServiceTask(c, self._sink, probe=self._probe) for c in configs]
            for t in tasks:
                t.start()
            self._tasks = tasks
        logger.info("Uptime monitoring started for %d service(s)", len(tasks))
        return len(tasks)

    def stop(self) -> None:
        with self._lock:
            tasks, self._tasks = self._tasks, []
        for t in tasks:
            t.cancel()
        for t in tasks:
            t.join()
        if tasks:
            logger.info("Uptime monitoring stopped")
