from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from uptime_monitor.models import CheckStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


@dataclass(frozen=True)
class CheckResult:
    service_id: int
    status: CheckStatus
    response_time_ms: int | None = None
    error_message: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def ok(self) -> bool:
        return self.status is CheckStatus.UP

    @classmethod
    def up(cls, service_id: int, response_time_ms: int | None) -> "CheckResult":
        return cls(service_id=service_id, status=CheckStatus.UP, response_time_ms=response_time_ms)

    @classmethod
    def down(
        cls, service_id: int, error_message: str, response_time_ms: int | None = None
    ) -> "CheckResult":
        return cls(
            service_id=service_id,
            status=CheckStatus.DOWN,
            response_time_ms=response_time_ms,
            error_message=error_message,
        )

    @classmethod
    def warning(
        cls, service_id: int, error_message: str, response_time_ms: int | None = None
    ) -> "CheckResult":
        return cls(
            service_id=service_id,
            status=CheckStatus.WARNING,
            response_time_ms=response_time_ms,
            error_message=error_message,
        )
