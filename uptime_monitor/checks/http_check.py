from __future__ import annotations

import time

import requests

from uptime_monitor.checks.deadline import FutureTimeoutError, call_with_deadline
from uptime_monitor.checks.results import CheckResult, elapsed_ms
from uptime_monitor.models import ProbeConfig

BODY_CHUNK_SIZE = 1024


class BodyDeadlineExceeded(Exception):
    pass


def _read_body(resp: requests.Response, deadline: float) -> str:
    chunks = []
    for chunk in resp.iter_content(chunk_size=BODY_CHUNK_SIZE):
        chunks.append(chunk)
        if time.perf_counter() > deadline:
            raise BodyDeadlineExceeded()
    return b"".join(chunks).decode(resp.encoding or "utf-8", errors="replace")


def _probe(config: ProbeConfig, connect_timeout: float, start: float) -> CheckResult:
    deadline = start + config.timeout_s
    auth = (config.username, config.password) if config.has_basic_auth else None

    try:
        resp = requests.get(
            config.endpoint,
            timeout=(connect_timeout, config.timeout_s),
            auth=auth,
            headers=dict(config.headers) or None,
            verify=not config.insecure_skip,
            stream=True,
        )
    except requests.RequestException as e:
        return CheckResult.down(config.service_id, f"connection error: {e}")

    with resp:
        latency_ms = elapsed_ms(start)
        code = resp.status_code

        if config.expected_status_code is not None and code != config.expected_status_code:
            return CheckResult.down(
                config.service_id,
                f"expected status code {config.expected_status_code}, got {code}",
                response_time_ms=latency_ms,
            )
        if config.expected_status_code is None and not 200 <= code < 300:
            return CheckResult.down(
                config.service_id, f"HTTP error code: {code}", response_time_ms=latency_ms
            )

        if config.expected_content:
            try:
                body = _read_body(resp, deadline)
            except requests.RequestException as e:
                return CheckResult.down(
                    config.service_id, f"content read error: {e}", response_time_ms=latency_ms
                )
            latency_ms = elapsed_ms(start)
            if config.expected_content not in body:
                return CheckResult.down(
                    config.service_id, "expected content not found", response_time_ms=latency_ms
                )

        return CheckResult.up(config.service_id, latency_ms)


def run_http(config: ProbeConfig, connect_timeout_s: float | None = None) -> CheckResult:
    """GET the endpoint; ``config.timeout_s`` bounds the whole probe, body included."""
    start = time.perf_counter()
    connect_timeout = config.timeout_s if connect_timeout_s is None else connect_timeout_s
    try:
        return call_with_deadline(
            _probe, config.timeout_s, config, connect_timeout, start,
            name=f"http-{config.service_id}",
        )
    except (FutureTimeoutError, BodyDeadlineExceeded):
        return CheckResult.down(
            config.service_id, f"HTTP request timed out after {config.timeout_s:g}s"
        )
