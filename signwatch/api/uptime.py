"""Uptime statistics API endpoint."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from signwatch.api.deps import get_health_monitor
from signwatch.health.monitor import HealthMonitor
from signwatch.uptime.tracker import calculate_uptime_statistics

router = APIRouter(prefix="/api/uptime", tags=["uptime"])


class IncidentResponse(BaseModel):
    start: datetime
    end: datetime | None
    duration_minutes: float
    affected_components: list[str]
    severity: str
    is_open: bool


class ComponentUptimeResponse(BaseModel):
    availability: float
    total_checks: int
    up_checks: int
    incidents: int


class UptimeResponse(BaseModel):
    """Availability, MTTR and recent incidents over the requested window."""

    window_hours: float
    percentage: float
    total_checks: int
    up_checks: int
    mean_time_to_recovery: float
    longest_downtime: float
    components: dict[str, ComponentUptimeResponse]
    incidents: list[IncidentResponse]


@router.get("", response_model=UptimeResponse)
async def get_uptime(
    hours: float = Query(default=24, gt=0, le=24),
    component: str | None = Query(default=None),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> UptimeResponse:
    """Get uptime statistics, optionally restricted to one component.

    The history covers at most the last 24 hours of checks.
    """
    stats = calculate_uptime_statistics(monitor.get_uptime_history(hours))

    components = stats.components
    if component is not None:
        if component not in components and component not in monitor.component_names:
            raise HTTPException(status_code=404, detail=f"Component '{component}' not found")
        components = {k: v for k, v in components.items() if k == component}

    incidents = stats.incidents
    if component is not None:
        incidents = [i for i in incidents if component in i.affected_components]

    return UptimeResponse(
        window_hours=hours,
        percentage=stats.percentage,
        total_checks=stats.total_checks,
        up_checks=stats.up_checks,
        mean_time_to_recovery=stats.mean_time_to_recovery,
        longest_downtime=stats.longest_downtime,
        components={
            name: ComponentUptimeResponse(
                availability=c.availability,
                total_checks=c.total_checks,
                up_checks=c.up_checks,
                incidents=c.incidents,
            )
            for name, c in components.items()
        },
        incidents=[
            IncidentResponse(
                start=i.start,
                end=i.end,
                duration_minutes=i.duration_minutes,
                affected_components=i.affected_components,
                severity=i.severity.value,
                is_open=i.is_open,
            )
            for i in incidents
        ],
    )
