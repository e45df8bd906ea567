from __future__ import annotations

import threading
from collections import deque
from datetime import datetime
from typing import Protocol

from uptime_monitor.checks.results import CheckResult
from uptime_monitor.models import CheckStatus
from uptime_monitor.persistence import SQLitePersistence


class ResultSink(Protocol):
    def append(self, result: CheckResult) -> None: ...


class ResultStore:
    """Append sink for check results plus the read side used by the API.

    With a database every append goes straight to ``uptime_checks``; without
    one, the newest ``max_results`` results of each service are kept in memory,
    so availability there covers that window rather than the full history.
    """

    def __init__(
        self, persistence: SQLitePersistence | None = None, max_results: int = 10000
    ) -> None:
        self._persistence = persistence
        self._max_results = max_results
        self._results: dict[int, deque[CheckResult]] = {}
        self._latest: dict[int, CheckResult] = {}
        self._lock = threading.Lock()

    def append(self, result: CheckResult) -> None:
        with self._lock:
            if self._persistence:
                self._persistence.append_check_result(result)
            else:
                bucket = self._results.get(result.service_id)
                if bucket is None:
                    bucket = self._results[result.service_id] = deque(maxlen=self._max_results)
                bucket.append(result)
            self._latest[result.service_id] = result

    def latest(self, service_id: int) -> CheckResult | None:
        with self._lock:
            cached = self._latest.get(service_id)
        if cached is not None or not self._persistence:
            return cached
        recent = self._persistence.recent_results(service_id, limit=1)
        return recent[0] if recent else None

    def _memory_results(self, service_id: int) -> list[CheckResult]:
        with self._lock:
            return list(self._results.get(service_id, ()))

    def count_results(self, service_id: int) -> int:
        if self._persistence:
            return self._persistence.count_results(service_id)
        return len(self._memory_results(service_id))

    def count_results_by_status(self, service_id: int, status: CheckStatus) -> int:
        if self._persistence:
            return self._persistence.count_results_by_status(service_id, status)
        return sum(1 for r in self._memory_results(service_id) if r.status == status)

    def count_totals(self, service_id: int) -> tuple[int, int]:
        """(total, up) taken together so an append cannot land in between."""
        if self._persistence:
            return self._persistence.count_totals(service_id)
        results = self._memory_results(service_id)
        return len(results), sum(1 for r in results if r.status is CheckStatus.UP)

    def recent(self, service_id: int, limit: int = 10) -> list[CheckResult]:
        """Newest first."""
        if self._persistence:
            return self._persistence.recent_results(service_id, limit)
        return list(reversed(self._memory_results(service_id)[-limit:]))

    def history(self, service_id: int, start: datetime, end: datetime) -> list[CheckResult]:
        if self._persistence:
            return self._persistence.results_between(service_id, start, end)
        return [r for r in self._memory_results(service_id) if start <= r.timestamp <= end]

    def since(self, service_id: int, start: datetime) -> list[CheckResult]:
        if self._persistence:
            return self._persistence.results_since(service_id, start)
        return [r for r in self._memory_results(service_id) if r.timestamp >= start]
