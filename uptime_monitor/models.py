from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CheckType(str, Enum):
    HTTP = "http"
    TCP = "tcp"
    DNS = "dns"
    CERTIFICATE = "certificate"


class CheckStatus(str, Enum):
    UP = "up"
    DOWN = "down"
    WARNING = "warning"


def infer_check_type(endpoint: str) -> CheckType:
    if endpoint.startswith("http://") or endpoint.startswith("https://"):
        return CheckType.HTTP
    if ":" in endpoint:
        return CheckType.TCP
    return CheckType.DNS


class Defaults(BaseModel):
    interval_s: int = Field(default=60, gt=0)
    timeout_s: float = Field(default=10, gt=0)
    ssl_warning_days: int = Field(default=30, ge=0)


class ProbeConfig(BaseModel):
    """Everything a single probe needs. Used as-is for ad-hoc probes."""

    model_config = ConfigDict(frozen=True)

    service_id: int = 0
    endpoint: str = Field(..., min_length=1)
    check_type: CheckType
    timeout_s: float = Field(default=10, gt=0)

    # http only
    expected_status_code: Optional[int] = None
    expected_content: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)

    # certificate
    ssl_check: bool = False
    ssl_warning_days: int = Field(default=30, ge=0)
    insecure_skip: bool = False

    @model_validator(mode="before")
    @classmethod
    def _derive_from_endpoint(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        endpoint = str(data.get("endpoint") or "").strip()
        data["endpoint"] = endpoint
        if not data.get("check_type"):
            data["check_type"] = infer_check_type(endpoint)
        if data.get("ssl_check") is None:
            data["ssl_check"] = endpoint.startswith("https://")
        if data.get("headers") is None:
            data["headers"] = {}
        return data

    @property
    def has_basic_auth(self) -> bool:
        return bool(self.username) and bool(self.password)


class CheckConfig(ProbeConfig):
    name: str = ""
    namespace: str = ""
    cluster: str = ""
    interval_s: int = Field(default=60, gt=0)


class ServiceRecord(BaseModel):
    """One monitorable service as read from a service source.

    The database only fills the identity columns; the YAML source may set any
    optional probe field as a per-service override.
    """

    id: int
    name: str = ""
    namespace: str = ""
    cluster: str = ""
    endpoint: str = ""
    interval_s: Optional[int] = None

    check_type: Optional[CheckType] = None
    timeout_s: Optional[float] = None
    expected_status_code: Optional[int] = None
    expected_content: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    ssl_check: Optional[bool] = None
    ssl_warning_days: Optional[int] = None
    insecure_skip: Optional[bool] = None


class ServicesFile(BaseModel):
    defaults: Defaults = Defaults()
    services: List[ServiceRecord] = Field(default_factory=list)
