"""Health monitoring API endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel

from signwatch.api.deps import get_health_monitor, get_scheduler
from signwatch.health.models import ComponentStatus, HealthCheckResult, ServiceComponent
from signwatch.health.monitor import HealthMonitor
from signwatch.workers.scheduler import MonitoringScheduler

router = APIRouter(prefix="/api/health", tags=["health"])


class ComponentHealthResponse(BaseModel):
    """Response for single component health."""

    name: str
    status: str
    response_time_ms: float
    last_checked_at: datetime
    error: str | None
    metadata: dict[str, Any]


class ComponentDetailResponse(ComponentHealthResponse):
    """Component health plus its availability over the requested window."""

    availability: float
    window_hours: float


class UptimeSummaryResponse(BaseModel):
    percentage: float
    total_checks: int
    successful_checks: int
    downtime_minutes: float
    last_downtime: datetime | None


class PerformanceSummaryResponse(BaseModel):
    average_response_time: float
    p95_response_time: float
    throughput: float
    error_rate: float


class QuotaSummaryResponse(BaseModel):
    used: int
    limit: int
    percentage: float
    status: str
    reset_date: datetime | None


class SystemHealthResponse(BaseModel):
    """Response for system-wide health."""

    overall_status: str
    timestamp: datetime
    components: list[ComponentHealthResponse]
    uptime: UptimeSummaryResponse
    performance: PerformanceSummaryResponse
    quota: QuotaSummaryResponse


def _component_response(component: ServiceComponent) -> ComponentHealthResponse:
    return ComponentHealthResponse(
        name=component.name,
        status=component.status.value,
        response_time_ms=component.response_time_ms,
        last_checked_at=component.last_checked_at,
        error=component.error,
        metadata=component.metadata,
    )


def build_health_response(result: HealthCheckResult) -> SystemHealthResponse:
    uptime = result.uptime_summary
    performance = result.performance_summary
    quota = result.quota_summary
    return SystemHealthResponse(
        overall_status=result.overall.value,
        timestamp=result.timestamp,
        components=[_component_response(c) for c in result.components],
        uptime=UptimeSummaryResponse(
            percentage=uptime.percentage,
            total_checks=uptime.total_checks,
            successful_checks=uptime.successful_checks,
            downtime_minutes=uptime.downtime_minutes,
            last_downtime=uptime.last_downtime,
        ),
        performance=PerformanceSummaryResponse(
            average_response_time=performance.average_response_time,
            p95_response_time=performance.p95_response_time,
            throughput=performance.throughput,
            error_rate=performance.error_rate,
        ),
        quota=QuotaSummaryResponse(
            used=quota.used,
            limit=quota.limit,
            percentage=quota.percentage,
            status=quota.status.value,
            reset_date=quota.reset_date,
        ),
    )


def _respond(result: HealthCheckResult, response: Response) -> SystemHealthResponse:
    if result.overall != ComponentStatus.HEALTHY:
        response.status_code = 503
    return build_health_response(result)


@router.get("", response_model=SystemHealthResponse)
async def get_health(
    response: Response,
    monitor: HealthMonitor = Depends(get_health_monitor),
    scheduler: MonitoringScheduler = Depends(get_scheduler),
) -> SystemHealthResponse:
    """Get the latest health check result, running one if none exists yet.

    Returns 200 if healthy, 503 if degraded or unhealthy.
    """
    result = monitor.latest
    if result is None:
        result = await scheduler.trigger_health_check()
    return _respond(result, response)


@router.post("/check", response_model=SystemHealthResponse)
async def run_health_check(
    response: Response,
    scheduler: MonitoringScheduler = Depends(get_scheduler),
) -> SystemHealthResponse:
    """Run a health check now and return its result."""
    result = await scheduler.trigger_health_check()
    return _respond(result, response)


@router.get("/component/{component_name}", response_model=ComponentDetailResponse)
async def get_component_health(
    component_name: str,
    hours: float = Query(default=24, gt=0, le=24),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> ComponentDetailResponse:
    """Get the latest status and availability of a specific component."""
    component = monitor.get_component(component_name)
    if component is None:
        raise HTTPException(status_code=404, detail=f"Component '{component_name}' not found")

    return ComponentDetailResponse(
        **_component_response(component).model_dump(),
        availability=monitor.get_component_availability(component_name, hours),
        window_hours=hours,
    )
