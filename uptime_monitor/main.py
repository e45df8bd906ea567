import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
import uvicorn

from uptime_monitor.api_schemas import (
    CheckResultResponse,
    HealthResponse,
    MonitoringStatusResponse,
    ServiceDetailResponse,
    ServiceStatusResponse,
    UptimeHistoryResponse,
    UptimePercentageResponse,
    UptimeTestRequest,
)
from uptime_monitor.availability import AvailabilityCalculator
from uptime_monitor.config import settings
from uptime_monitor.engine import UptimeMonitor
from uptime_monitor.errors import ConfigLoadError
from uptime_monitor.formatting import results_to_csv
from uptime_monitor.history import export_window_start, history_window, serialize_ts
from uptime_monitor.models import CheckConfig, Defaults
from uptime_monitor.persistence import SQLitePersistence
from uptime_monitor.registry import ServiceRegistry, YamlServiceSource
from uptime_monitor.state import ResultStore

logger = logging.getLogger(__name__)

RECENT_CHECKS_LIMIT = 10


def create_app(
    store: ResultStore,
    registry: Optional[ServiceRegistry],
    autostart: bool = True,
) -> FastAPI:
    monitor = UptimeMonitor(registry=registry, sink=store)
    availability = AvailabilityCalculator(store)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if autostart:
            try:
                monitor.start_monitoring()
            except ConfigLoadError:
                logger.warning("API is serving without schedules; only ad-hoc probes are available")
        yield
        monitor.stop_monitoring()

    app = FastAPI(
        title="Uptime Monitor",
        version="1.0.0",
        description=(
            "Probes registered HTTP, TCP, DNS and TLS certificate endpoints on "
            "independent schedules and reports availability from stored results."
        ),
        lifespan=lifespan,
    )
    app.state.monitor = monitor
    app.state.store = store

    def service_status(config: CheckConfig) -> dict:
        latest = store.latest(config.service_id)
        return {
            "id": config.service_id,
            "name": config.name,
            "namespace": config.namespace,
            "cluster": config.cluster,
            "endpoint": config.endpoint,
            "check_type": config.check_type,
            "check_interval": config.interval_s,
            "status": latest.status.value if latest else "unknown",
            "last_check": serialize_ts(latest.timestamp) if latest else None,
            "response_time_ms": latest.response_time_ms if latest else None,
            "uptime_percentage": availability.percentage(config.service_id),
        }

    def require_service(service_id: int) -> CheckConfig:
        config = monitor.config_for(service_id)
        if config is None:
            raise HTTPException(status_code=404, detail=f"Unknown service id: {service_id}")
        return config

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["system"],
        summary="Health Check",
        description="Liveness endpoint used by probes and orchestration.",
    )
    def health():
        return {"status": "ok"}

    @app.get(
        "/api/v1/monitoring",
        response_model=MonitoringStatusResponse,
        tags=["system"],
        summary="Monitoring Status",
        description="Whether schedules are running and how many.",
    )
    def monitoring_status():
        tasks = monitor.running_tasks
        return {"running": tasks > 0, "tasks": tasks, "services": len(monitor.configs)}

    @app.post(
        "/api/v1/test-uptime",
        response_model=CheckResultResponse,
        tags=["checks"],
        summary="Test Endpoint",
        description="Runs one probe immediately with the same rules as scheduled checks.",
    )
    def test_uptime(request: UptimeTestRequest):
        result = monitor.run_once(request.to_probe_config())
        return CheckResultResponse.from_result(result)

    @app.get(
        "/api/v1/services",
        response_model=list[ServiceStatusResponse],
        tags=["services"],
        summary="Monitored Services",
        description="Scheduled services with their latest result and uptime percentage.",
    )
    def services():
        return [service_status(c) for c in monitor.configs]

    @app.get(
        "/api/v1/services/{service_id}",
        response_model=ServiceDetailResponse,
        tags=["services"],
        summary="Service Detail",
        description="Service configuration plus its most recent check results.",
    )
    def service_detail(service_id: int):
        config = require_service(service_id)
        return {
            "service": service_status(config),
            "uptime_checks": [
                CheckResultResponse.from_result(r)
                for r in store.recent(service_id, limit=RECENT_CHECKS_LIMIT)
            ],
        }

    @app.get(
        "/api/v1/services/{service_id}/uptime",
        response_model=UptimePercentageResponse,
        tags=["services"],
        summary="Uptime Percentage",
        description="Share of all stored results for the service that were up.",
    )
    def service_uptime(service_id: int):
        return {"service_id": service_id, "uptime_percentage": availability.percentage(service_id)}

    @app.get(
        "/api/v1/uptime-history",
        response_model=UptimeHistoryResponse,
        tags=["services"],
        summary="Uptime History",
        description="Results for one service between two timestamps, oldest first.",
    )
    def uptime_history(
        service_id: int = Query(..., description="Service id"),
        start_date: str = Query(..., description="RFC 3339 or YYYY-MM-DDTHH:MM"),
        end_date: str = Query(..., description="RFC 3339 or YYYY-MM-DDTHH:MM"),
    ):
        try:
            start, end = history_window(start_date, end_date)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid date: {exc}") from exc

        return {
            "service_id": service_id,
            "start": serialize_ts(start),
            "end": serialize_ts(end),
            "history": [
                CheckResultResponse.from_result(r) for r in store.history(service_id, start, end)
            ],
        }

    @app.get(
        "/api/v1/services/{service_id}/export",
        tags=["services"],
        summary="Export Results",
        description="CSV of the service's results for a recent range (1h, 1d, 1w, 1m, 6m, 9m, 1y).",
        response_class=Response,
    )
    def service_export(service_id: int, range_key: str = Query(default="1d", alias="range")):
        try:
            start = export_window_start(range_key)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return Response(
            content=results_to_csv(store.since(service_id, start)),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename=service_{service_id}_export.csv"
            },
        )

    return app


def build_registry(persistence: SQLitePersistence) -> ServiceRegistry:
    if settings.UPTIME_SERVICES_FILE:
        return ServiceRegistry(YamlServiceSource(settings.UPTIME_SERVICES_FILE))
    return ServiceRegistry(
        persistence,
        defaults=Defaults(
            interval_s=settings.DEFAULT_CHECK_INTERVAL,
            timeout_s=settings.DEFAULT_TIMEOUT_S,
            ssl_warning_days=settings.DEFAULT_SSL_WARNING_DAYS,
        ),
    )


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    persistence = SQLitePersistence(settings.UPTIME_DB_PATH)
    store = ResultStore(persistence, max_results=settings.MAX_MEMORY_RESULTS)
    app = create_app(store, build_registry(persistence))
    logger.info("Server listening on %s:%s", settings.SERVER_HOST, settings.SERVER_PORT)
    try:
        uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT)
    finally:
        persistence.close()


if __name__ == "__main__":
    main()
