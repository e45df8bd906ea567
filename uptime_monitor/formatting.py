from __future__ import annotations

import csv
import io
from typing import Iterable

from uptime_monitor.checks.results import CheckResult
from uptime_monitor.history import serialize_ts
from uptime_monitor.models import CheckConfig

CSV_HEADER = ("status", "response_time", "error_message", "timestamp")


def format_result(config: CheckConfig, result: CheckResult) -> str:
    label = config.name or config.endpoint
    line = (
        f"Service {result.service_id} ({label}, {config.check_type.value}) "
        f"status: {result.status.value}"
    )
    if result.response_time_ms is not None:
        line += f" in {result.response_time_ms} ms"
    if result.error_message:
        line += f" - {result.error_message}"
    return line


def results_to_csv(results: Iterable[CheckResult]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for r in results:
        writer.writerow(
            (
                r.status.value,
                r.response_time_ms if r.response_time_ms is not None else 0,
                r.error_message or "",
                serialize_ts(r.timestamp),
            )
        )
    return buf.getvalue()
