from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import sqlite3
import threading
from typing import Any

from uptime_monitor.checks.results import CheckResult
from uptime_monitor.errors import PersistenceError
from uptime_monitor.models import CheckStatus, ServiceRecord


class SQLitePersistence:
    """Services table reader and append-only ``uptime_checks`` writer.

    Every statement runs under one lock so the scheduler's per-service threads
    can append concurrently.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = self._resolve_db_path(db_path)
        self._lock = threading.Lock()

        try:
            if str(self._db_path) != ":memory:":
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row

            with self._lock:
                if str(self._db_path) != ":memory:":
                    self._conn.execute("PRAGMA journal_mode=WAL")
                    self._conn.execute("PRAGMA synchronous=NORMAL")
                self._init_schema()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(f"cannot open database {self._db_path}: {exc}") from exc

    @staticmethod
    def _resolve_db_path(raw_path: str) -> Path:
        if raw_path == ":memory:":
            return Path(raw_path)
        p = Path(raw_path).expanduser()
        if p.is_absolute():
            return p
        return Path.cwd() / p

    def _init_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS services (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                namespace TEXT NOT NULL,
                cluster TEXT NOT NULL,
                type TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS uptime_checks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                service_id INTEGER NOT NULL,
                status TEXT NOT NULL,
                response_time INTEGER,
                error_message TEXT,
                timestamp TEXT NOT NULL,
                FOREIGN KEY(service_id) REFERENCES services(id)
            )
            """
        )
        # Older databases were created before endpoints were monitored.
        self._add_column_if_missing(table="services", column="endpoint", ddl="TEXT")
        self._add_column_if_missing(
            table="services", column="check_interval", ddl="INTEGER DEFAULT 60"
        )
        self._conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_uptime_checks_service
            ON uptime_checks (service_id, id)
            """
        )
        self._conn.commit()

    def _add_column_if_missing(self, table: str, column: str, ddl: str) -> None:
        cols = self._conn.execute(f"PRAGMA table_info({table})").fetchall()
        existing = {row["name"] for row in cols}
        if column in existing:
            return
        self._conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")

    @staticmethod
    def _to_db_ts(ts: datetime) -> str:
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")

    @staticmethod
    def _from_db_ts(raw: str) -> datetime:
        ts = datetime.fromisoformat(raw)
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts

    def _row_to_result(self, r: sqlite3.Row) -> CheckResult:
        return CheckResult(
            service_id=r["service_id"],
            status=CheckStatus(r["status"]),
            response_time_ms=r["response_time"],
            error_message=r["error_message"],
            timestamp=self._from_db_ts(r["timestamp"]),
        )

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise PersistenceError(f"query failed: {exc}") from exc

    def add_service(
        self,
        name: str,
        endpoint: str | None,
        namespace: str = "default",
        cluster: str = "default",
        service_type: str = "ClusterIP",
        check_interval: int = 60,
    ) -> int:
        with self._lock:
            try:
                cur = self._conn.execute(
                    """
                    INSERT INTO services (name, namespace, cluster, type, endpoint, check_interval)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (name, namespace, cluster, service_type, endpoint, check_interval),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise PersistenceError(f"cannot add service {name!r}: {exc}") from exc
        return int(cur.lastrowid)

    def list_monitorable_services(self) -> list[ServiceRecord]:
        rows = self._query(
            """
            SELECT id, name, namespace, cluster, endpoint,
                   COALESCE(check_interval, 60) AS check_interval
            FROM services
            WHERE endpoint IS NOT NULL AND TRIM(endpoint) != ''
            ORDER BY id
            """
        )
        return [
            ServiceRecord(
                id=r["id"],
                name=r["name"],
                namespace=r["namespace"],
                cluster=r["cluster"],
                endpoint=r["endpoint"],
                interval_s=r["check_interval"],
            )
            for r in rows
        ]

    def append_check_result(self, result: CheckResult) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO uptime_checks (
                        service_id, status, response_time, error_message, timestamp
                    ) VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        result.service_id,
                        result.status.value,
                        result.response_time_ms,
                        result.error_message,
                        self._to_db_ts(result.timestamp),
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise PersistenceError(
                    f"cannot save check result for service {result.service_id}: {exc}"
                ) from exc

    def count_results(self, service_id: int) -> int:
        rows = self._query(
            "SELECT COUNT(*) AS n FROM uptime_checks WHERE service_id = ?", (service_id,)
        )
        return int(rows[0]["n"])

    def count_results_by_status(self, service_id: int, status: CheckStatus) -> int:
        rows = self._query(
            "SELECT COUNT(*) AS n FROM uptime_checks WHERE service_id = ? AND status = ?",
            (service_id, CheckStatus(status).value),
        )
        return int(rows[0]["n"])

    def count_totals(self, service_id: int) -> tuple[int, int]:
        """(total, up) for one service, read in a single statement."""
        rows = self._query(
            """
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(CASE WHEN status = ? THEN 1 ELSE 0 END), 0) AS up
            FROM uptime_checks
            WHERE service_id = ?
            """,
            (CheckStatus.UP.value, service_id),
        )
        return int(rows[0]["total"]), int(rows[0]["up"])

    def recent_results(self, service_id: int, limit: int) -> list[CheckResult]:
        rows = self._query(
            """
            SELECT service_id, status, response_time, error_message, timestamp
            FROM uptime_checks
            WHERE service_id = ?
            ORDER BY id DESC
            LIMIT ?
            """,
            (service_id, limit),
        )
        return [self._row_to_result(r) for r in rows]

    def results_between(
        self, service_id: int, start: datetime, end: datetime
    ) -> list[CheckResult]:
        rows = self._query(
            """
            SELECT service_id, status, response_time, error_message, timestamp
            FROM uptime_checks
            WHERE service_id = ? AND timestamp BETWEEN ? AND ?
            ORDER BY id ASC
            """,
            (service_id, self._to_db_ts(start), self._to_db_ts(end)),
        )
        return [self._row_to_result(r) for r in rows]

    def results_since(self, service_id: int, start: datetime) -> list[CheckResult]:
        rows = self._query(
            """
            SELECT service_id, status, response_time, error_message, timestamp
            FROM uptime_checks
            WHERE service_id = ? AND timestamp >= ?
            ORDER BY id ASC
            """,
            (service_id, self._to_db_ts(start)),
        )
        return [self._row_to_result(r) for r in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
