"""Scheduler control API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from signwatch.api.deps import get_scheduler
from signwatch.workers.scheduler import (
    ALERT_TASK,
    HEALTH_TASK,
    QUOTA_TASK,
    MonitoringScheduler,
    SchedulerStartError,
)

router = APIRouter(prefix="/api/scheduler", tags=["scheduler"])


class SchedulerStatusResponse(BaseModel):
    state: str
    is_running: bool
    intervals: dict[str, float]
    jobs: dict[str, str | None]
    in_flight: list[str]


class TriggerResponse(BaseModel):
    task: str
    result: Any


@router.get("/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(
    scheduler: MonitoringScheduler = Depends(get_scheduler),
) -> SchedulerStatusResponse:
    return SchedulerStatusResponse(**scheduler.get_status())


@router.post("/start", response_model=SchedulerStatusResponse)
async def start_scheduler(
    scheduler: MonitoringScheduler = Depends(get_scheduler),
) -> SchedulerStatusResponse:
    try:
        await scheduler.start()
    except SchedulerStartError as e:
        raise HTTPException(status_code=500, detail=f"Scheduler failed to start: {e}") from e
    return SchedulerStatusResponse(**scheduler.get_status())


@router.post("/stop", response_model=SchedulerStatusResponse)
async def stop_scheduler(
    scheduler: MonitoringScheduler = Depends(get_scheduler),
) -> SchedulerStatusResponse:
    scheduler.stop()
    return SchedulerStatusResponse(**scheduler.get_status())


@router.post("/trigger/{task}", response_model=TriggerResponse)
async def trigger_task(
    task: str,
    scheduler: MonitoringScheduler = Depends(get_scheduler),
) -> TriggerResponse:
    """Run one monitoring task now, waiting for an in-flight run to finish first.

    Args:
        task: health_check, alert_check or quota_check
    """
    if task == HEALTH_TASK:
        result = (await scheduler.trigger_health_check()).to_dict()
    elif task == ALERT_TASK:
        result = [a.to_dict() for a in await scheduler.trigger_alert_check()]
    elif task == QUOTA_TASK:
        result = [
            {
                "user_id": a.user_id,
                "type": a.type.value,
                "severity": a.severity,
                "message": a.message,
                "timestamp": a.timestamp.isoformat(),
                "data": a.data,
            }
            for a in await scheduler.trigger_quota_check()
        ]
    else:
        raise HTTPException(status_code=404, detail=f"Unknown task '{task}'")

    return TriggerResponse(task=task, result=result)
