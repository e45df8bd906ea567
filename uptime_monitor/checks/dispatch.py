from __future__ import annotations

import logging
from typing import Callable, Mapping

from uptime_monitor.checks.cert_check import run_certificate
from uptime_monitor.checks.dns_check import run_dns
from uptime_monitor.checks.http_check import run_http
from uptime_monitor.checks.results import CheckResult
from uptime_monitor.checks.tcp_check import run_tcp
from uptime_monitor.models import CheckType, ProbeConfig

logger = logging.getLogger(__name__)

Strategy = Callable[[ProbeConfig], CheckResult]

STRATEGIES: Mapping[CheckType, Strategy] = {
    CheckType.HTTP: run_http,
    CheckType.TCP: run_tcp,
    CheckType.DNS: run_dns,
    CheckType.CERTIFICATE: run_certificate,
}


def run_check(config: ProbeConfig) -> CheckResult:
    """Run the strategy for ``config.check_type``. Always returns a result."""
    strategy = STRATEGIES[config.check_type]
    try:
        return strategy(config)
    except Exception as e:
        logger.exception(
            "Unexpected %s check failure for service %s", config.check_type.value, config.service_id
        )
        return CheckResult.down(config.service_id, f"unexpected check error: {e}")
