"""Workers package: the monitoring scheduler and its task guards."""

from signwatch.workers.guard import TaskGuard
from signwatch.workers.scheduler import (
    ALERT_TASK,
    HEALTH_TASK,
    QUOTA_TASK,
    TASKS,
    MonitoringScheduler,
    SchedulerStartError,
    SchedulerState,
)

__all__ = [
    "ALERT_TASK",
    "HEALTH_TASK",
    "MonitoringScheduler",
    "QUOTA_TASK",
    "SchedulerStartError",
    "SchedulerState",
    "TASKS",
    "TaskGuard",
]
