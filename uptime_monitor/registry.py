from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import yaml
from pydantic import ValidationError

from uptime_monitor.errors import ConfigLoadError, PersistenceError
from uptime_monitor.models import CheckConfig, Defaults, ServiceRecord, ServicesFile

logger = logging.getLogger(__name__)


class ServiceSource(Protocol):
    def list_monitorable_services(self) -> list[ServiceRecord]: ...


def load_services_file(path: Path) -> ServicesFile:
    if not path.exists():
        raise FileNotFoundError(f"Missing services file at {path}")

    data = yaml.safe_load(path.read_text()) or {}
    services = ServicesFile.model_validate(data)

    # Ensure unique IDs
    seen = set()
    for s in services.services:
        if s.id in seen:
            raise ValueError(f"Duplicate service id: {s.id}")
        seen.add(s.id)

    return services


class YamlServiceSource:
    """Services declared in a ``services.yml`` file instead of the database."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._defaults: Defaults | None = None

    @property
    def defaults(self) -> Defaults | None:
        return self._defaults

    def list_monitorable_services(self) -> list[ServiceRecord]:
        services = load_services_file(self.path)
        self._defaults = services.defaults
        return [s for s in services.services if s.endpoint.strip()]


def apply_defaults(record: ServiceRecord, defaults: Defaults) -> CheckConfig:
    """Turn one service record into a check config, filling unset values."""
    overrides = record.model_dump(
        exclude={"id", "interval_s", "timeout_s", "ssl_warning_days"}, exclude_none=True
    )
    return CheckConfig(
        service_id=record.id,
        interval_s=record.interval_s or defaults.interval_s,
        timeout_s=record.timeout_s or defaults.timeout_s,
        ssl_warning_days=(
            defaults.ssl_warning_days
            if record.ssl_warning_days is None
            else record.ssl_warning_days
        ),
        **overrides,
    )


class ServiceRegistry:
    def __init__(self, source: ServiceSource, defaults: Defaults | None = None) -> None:
        self.source = source
        self.defaults = defaults

    def load_configs(self) -> list[CheckConfig]:
        try:
            records = self.source.list_monitorable_services()
        except (PersistenceError, OSError, yaml.YAMLError, ValidationError, ValueError) as exc:
            raise ConfigLoadError(f"cannot load service configurations: {exc}") from exc

        defaults = self.defaults or getattr(self.source, "defaults", None) or Defaults()
        configs: list[CheckConfig] = []
        for record in records:
            if not record.endpoint.strip():
                continue
            try:
                configs.append(apply_defaults(record, defaults))
            except ValidationError as exc:
                logger.warning("Skipping service %s: invalid configuration: %s", record.id, exc)
        return configs
