from __future__ import annotations

import logging

from uptime_monitor.checks.dispatch import run_check
from uptime_monitor.checks.results import CheckResult
from uptime_monitor.errors import ConfigLoadError
from uptime_monitor.models import CheckConfig, ProbeConfig
from uptime_monitor.registry import ServiceRegistry
from uptime_monitor.runner import Probe, Scheduler
from uptime_monitor.state import ResultSink

logger = logging.getLogger(__name__)


class UptimeMonitor:
    """Owns the schedules of every monitored service.

    Configurations are a snapshot taken at start; picking up added or removed
    services means ``stop_monitoring()`` followed by ``start_monitoring()``.
    """

    def __init__(
        self,
        registry: ServiceRegistry | None,
        sink: ResultSink,
        scheduler: Scheduler | None = None,
        probe: Probe = run_check,
    ) -> None:
        self._registry = registry
        self._probe = probe
        self._scheduler = scheduler or Scheduler(sink, probe=probe)
        self._configs: tuple[CheckConfig, ...] = ()

    @property
    def configs(self) -> tuple[CheckConfig, ...]:
        return self._configs

    @property
    def running_tasks(self) -> int:
        return self._scheduler.running_count()

    def config_for(self, service_id: int) -> CheckConfig | None:
        for c in self._configs:
            if c.service_id == service_id:
                return c
        return None

    def start_monitoring(self, configs: list[CheckConfig] | None = None) -> int:
        if configs is None:
            if self._registry is None:
                raise ConfigLoadError("no service registry configured")
            try:
                configs = self._registry.load_configs()
            except ConfigLoadError as exc:
                logger.error("Uptime monitoring could not start: %s", exc)
                raise

        started = self._scheduler.start(configs)
        self._configs = tuple(configs)
        return started

    def stop_monitoring(self) -> None:
        self._scheduler.stop()
        self._configs = ()

    def run_once(self, config: ProbeConfig) -> CheckResult:
        return self._probe(config)
