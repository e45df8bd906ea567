from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from uptime_monitor.checks.results import CheckResult
from uptime_monitor.history import serialize_ts
from uptime_monitor.models import CheckType, ProbeConfig


class HealthResponse(BaseModel):
    status: str = Field(description="Health status")


class MonitoringStatusResponse(BaseModel):
    running: bool
    tasks: int = Field(ge=0, description="Live per-service schedules")
    services: int = Field(ge=0, description="Services in the loaded snapshot")


class UptimeTestRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)
    check_type: CheckType | None = Field(
        default=None, description="Inferred from the endpoint when omitted"
    )
    timeout_s: float = Field(default=10, gt=0, le=120)
    expected_status_code: int | None = Field(default=None, ge=100, le=599)
    expected_content: str | None = None
    username: str | None = None
    password: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    ssl_check: bool | None = None
    ssl_warning_days: int = Field(default=30, ge=0)
    insecure_skip: bool = False

    def to_probe_config(self) -> ProbeConfig:
        return ProbeConfig(**self.model_dump())


class CheckResultResponse(BaseModel):
    status: Literal["up", "down", "warning"]
    response_time_ms: int | None = None
    error_message: str | None = None
    timestamp: str

    @classmethod
    def from_result(cls, result: CheckResult) -> "CheckResultResponse":
        return cls(
            status=result.status.value,
            response_time_ms=result.response_time_ms,
            error_message=result.error_message,
            timestamp=serialize_ts(result.timestamp) or "",
        )


class ServiceStatusResponse(BaseModel):
    id: int
    name: str
    namespace: str
    cluster: str
    endpoint: str
    check_type: CheckType
    check_interval: int
    status: Literal["up", "down", "warning", "unknown"]
    last_check: str | None = None
    response_time_ms: int | None = None
    uptime_percentage: float


class ServiceDetailResponse(BaseModel):
    service: ServiceStatusResponse
    uptime_checks: list[CheckResultResponse]


class UptimePercentageResponse(BaseModel):
    service_id: int
    uptime_percentage: float = Field(ge=0, le=100)


class UptimeHistoryResponse(BaseModel):
    service_id: int
    start: str
    end: str
    history: list[CheckResultResponse]
