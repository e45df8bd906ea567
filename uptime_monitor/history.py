from __future__ import annotations

from datetime import datetime, timedelta, timezone

HISTORY_MINUTE_FORMAT = "%Y-%m-%dT%H:%M"

# Inclusive end bound covers the whole minute the caller picked.
END_OF_MINUTE = timedelta(seconds=59)

EXPORT_RANGES: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "1d": timedelta(days=1),
    "1w": timedelta(days=7),
    "1m": timedelta(days=30),
    "6m": timedelta(days=180),
    "9m": timedelta(days=270),
    "1y": timedelta(days=365),
}


def serialize_ts(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_history_bound(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp or a ``YYYY-MM-DDTHH:MM`` form value (UTC)."""
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        parsed = datetime.strptime(value, HISTORY_MINUTE_FORMAT)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def history_window(start_raw: str, end_raw: str) -> tuple[datetime, datetime]:
    return parse_history_bound(start_raw), parse_history_bound(end_raw) + END_OF_MINUTE


def export_window_start(range_key: str, now: datetime | None = None) -> datetime:
    try:
        span = EXPORT_RANGES[range_key]
    except KeyError:
        raise ValueError(f"unknown range {range_key!r}") from None
    current = now or datetime.now(timezone.utc)
    return current - span
