from __future__ import annotations

import socket
import time

from uptime_monitor.checks.deadline import FutureTimeoutError, call_with_deadline
from uptime_monitor.checks.results import CheckResult, elapsed_ms
from uptime_monitor.models import ProbeConfig


def resolve(hostname: str) -> list[str]:
    infos = socket.getaddrinfo(hostname, None)
    return sorted({info[4][0] for info in infos})


def run_dns(config: ProbeConfig) -> CheckResult:
    start = time.perf_counter()
    # getaddrinfo has no timeout of its own; each lookup gets a thread.
    try:
        addresses = call_with_deadline(
            resolve, config.timeout_s, config.endpoint, name=f"dns-{config.service_id}"
        )
    except FutureTimeoutError:
        return CheckResult.down(
            config.service_id, f"DNS resolution timed out after {config.timeout_s:g}s"
        )
    except (OSError, UnicodeError) as e:
        return CheckResult.down(config.service_id, f"DNS resolution error: {e}")

    if not addresses:
        return CheckResult.down(
            config.service_id, f"DNS resolution error: no addresses for {config.endpoint}"
        )
    return CheckResult.up(config.service_id, elapsed_ms(start))
