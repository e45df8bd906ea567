from __future__ import annotations

import socket
import time

from uptime_monitor.checks.results import CheckResult, elapsed_ms
from uptime_monitor.models import ProbeConfig


def split_host_port(target: str) -> tuple[str, int]:
    host, sep, port = target.rpartition(":")
    if not sep or not host:
        raise ValueError(f"missing port in address {target!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    port_num = int(port)
    if not 0 < port_num < 65536:
        raise ValueError(f"invalid port {port_num} in address {target!r}")
    return host, port_num


def run_tcp(config: ProbeConfig) -> CheckResult:
    try:
        host, port = split_host_port(config.endpoint)
    except ValueError as e:
        return CheckResult.down(config.service_id, f"TCP connection error: {e}")

    start = time.perf_counter()
    try:
        with socket.create_connection((host, port), timeout=config.timeout_s):
            latency_ms = elapsed_ms(start)
    except OSError as e:
        return CheckResult.down(config.service_id, f"TCP connection error: {e}")
    return CheckResult.up(config.service_id, latency_ms)
