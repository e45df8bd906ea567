from __future__ import annotations

from typing import Protocol


class ResultCounter(Protocol):
    def count_totals(self, service_id: int) -> tuple[int, int]: ...


class AvailabilityCalculator:
    """Up-percentage over a service's full result history.

    Only ``up`` counts toward availability; ``warning`` results are part of the
    total but not of the numerator.
    """

    def __init__(self, counter: ResultCounter) -> None:
        self._counter = counter

    def percentage(self, service_id: int) -> float:
        total, up = self._counter.count_totals(service_id)
        if total == 0:
            return 0.0
        return up / total * 100.0
