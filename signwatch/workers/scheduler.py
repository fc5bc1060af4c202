"""Monitoring scheduler: the control loop driving health, alert and quota checks."""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from signwatch.workers.guard import TaskGuard

if TYPE_CHECKING:
    from signwatch.alerts.engine import AlertingEngine
    from signwatch.alerts.models import ActiveAlert
    from signwatch.health.models import HealthCheckResult
    from signwatch.health.monitor import HealthMonitor
    from signwatch.quota.monitor import QuotaAlert, QuotaMonitor

logger = logging.getLogger(__name__)

HEALTH_TASK = "health_check"
ALERT_TASK = "alert_check"
QUOTA_TASK = "quota_check"
TASKS = (HEALTH_TASK, ALERT_TASK, QUOTA_TASK)

DEFAULT_HEALTH_INTERVAL_SECONDS = 2 * 60
DEFAULT_ALERT_INTERVAL_SECONDS = 5 * 60
DEFAULT_QUOTA_INTERVAL_SECONDS = 15 * 60


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class SchedulerStartError(RuntimeError):
    """Raised when the scheduler cannot register or start its jobs."""


class MonitoringScheduler:
    """Owns the three repeating monitoring tasks and their lifecycle.

    State machine: STOPPED -> RUNNING -> STOPPED. Each task runs on its own
    interval, may overlap with the other two, but never with itself. A
    tick that fails is logged and does not affect the other tasks.

    Example:
        scheduler = MonitoringScheduler(health_monitor, alerting_engine, quota_monitor)
        await scheduler.start()
        scheduler.install_signal_handlers()

        # Operator initiated
        result = await scheduler.trigger_health_check()

        scheduler.stop()
    """

    def __init__(
        self,
        health: "HealthMonitor",
        alerts: "AlertingEngine",
        quota: "QuotaMonitor",
        health_interval_seconds: float = DEFAULT_HEALTH_INTERVAL_SECONDS,
        alert_interval_seconds: float = DEFAULT_ALERT_INTERVAL_SECONDS,
        quota_interval_seconds: float = DEFAULT_QUOTA_INTERVAL_SECONDS,
        initial_run_delay_seconds: float | None = None,
        scheduler_factory: Callable[[], AsyncIOScheduler] = AsyncIOScheduler,
    ) -> None:
        """Initialize the scheduler.

        Args:
            health: Health monitor run by the health task
            alerts: Alerting engine run by the alert task
            quota: Quota monitor run by the quota task
            health_interval_seconds: Health task interval (default 2 minutes)
            alert_interval_seconds: Alert task interval (default 5 minutes)
            quota_interval_seconds: Quota task interval (default 15 minutes)
            initial_run_delay_seconds: If set, run all three tasks once this
                long after start instead of waiting a full interval
            scheduler_factory: Creates the APScheduler instance on each start
        """
        self._health = health
        self._alerts = alerts
        self._quota = quota
        self._intervals = {
            HEALTH_TASK: health_interval_seconds,
            ALERT_TASK: alert_interval_seconds,
            QUOTA_TASK: quota_interval_seconds,
        }
        self._initial_delay = initial_run_delay_seconds
        self._scheduler_factory = scheduler_factory
        self._scheduler: AsyncIOScheduler | None = None
        self._state = SchedulerState.STOPPED
        self._guards = {name: TaskGuard(name) for name in TASKS}
        self._runners: dict[str, Callable[[], Awaitable[Any]]] = {
            HEALTH_TASK: self._run_health_check,
            ALERT_TASK: self._run_alert_check,
            QUOTA_TASK: self._run_quota_check,
        }

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    @property
    def intervals(self) -> dict[str, float]:
        return dict(self._intervals)

    def guard(self, task: str) -> TaskGuard:
        return self._guards[task]

    async def start(self) -> None:
        """Initialize the alert rules and register the repeating tasks.

        No-op if already running.

        Raises:
            SchedulerStartError: If the jobs could not be started; the
                scheduler is left STOPPED
        """
        if self.is_running:
            logger.info("Monitoring scheduler is already running")
            return

        logger.info("Starting monitoring scheduler...")
        scheduler: AsyncIOScheduler | None = None
        try:
            await self._alerts.initialize()

            scheduler = self._scheduler_factory()
            for task in TASKS:
                scheduler.add_job(
                    self._tick,
                    IntervalTrigger(seconds=self._intervals[task]),
                    args=[task],
                    id=task,
                    name=task.replace("_", " "),
                    max_instances=1,
                    coalesce=True,
                )
            if self._initial_delay is not None:
                scheduler.add_job(
                    self._initial_run,
                    DateTrigger(
                        run_date=datetime.now(tz=timezone.utc)
                        + timedelta(seconds=self._initial_delay)
                    ),
                    id="initial_checks",
                    name="initial checks",
                )
            scheduler.start()
        except Exception as e:
            logger.exception("Failed to start monitoring scheduler")
            if scheduler is not None and scheduler.running:
                scheduler.shutdown(wait=False)
            self._scheduler = None
            self._state = SchedulerState.STOPPED
            raise SchedulerStartError(str(e)) from e

        self._scheduler = scheduler
        self._state = SchedulerState.RUNNING
        logger.info(
            "Monitoring scheduler started (health=%ss, alert=%ss, quota=%ss)",
            self._intervals[HEALTH_TASK],
            self._intervals[ALERT_TASK],
            self._intervals[QUOTA_TASK],
        )

    def stop(self) -> None:
        """Cancel all timers. Idempotent.

        APScheduler's asyncio executor cancels ticks still in flight; their
        guards are released on cancellation. Manual triggers are not affected.
        """
        if self._scheduler is None and not self.is_running:
            return

        logger.info("Stopping monitoring scheduler...")
        self._state = SchedulerState.STOPPED
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None
        logger.info("Monitoring scheduler stopped")

    def install_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        on_signal: Callable[[], None] | None = None,
    ) -> None:
        """Stop the scheduler on SIGTERM/SIGINT.

        Args:
            loop: Event loop to register on (defaults to the running loop)
            on_signal: Extra callback run after stopping (e.g. to end the process)
        """
        loop = loop or asyncio.get_running_loop()

        def _handle(sig: signal.Signals) -> None:
            logger.info("Received %s, stopping monitoring scheduler...", sig.name)
            self.stop()
            if on_signal is not None:
                on_signal()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, _handle, sig)
            except (NotImplementedError, RuntimeError) as e:
                logger.warning("Cannot install handler for %s: %s", sig.name, e)

    def get_status(self) -> dict[str, Any]:
        jobs: dict[str, str | None] = {}
        if self._scheduler is not None:
            for job in self._scheduler.get_jobs():
                next_run = getattr(job, "next_run_time", None)
                jobs[job.id] = next_run.isoformat() if next_run else None
        return {
            "state": self._state.value,
            "is_running": self.is_running,
            "intervals": self.intervals,
            "jobs": jobs,
            "in_flight": [name for name, guard in self._guards.items() if guard.busy],
        }

    async def _tick(self, task: str) -> None:
        """Scheduled entry point: skip if stopped or already in flight."""
        if not self.is_running:
            return
        async with self._guards[task].try_hold() as acquired:
            if not acquired:
                logger.warning("Skipping scheduled %s: previous run still in flight", task)
                return
            if not self.is_running:
                return
            try:
                await self._runners[task]()
            except Exception:
                logger.exception("Scheduled %s failed", task)

    async def _initial_run(self) -> None:
        for task in TASKS:
            await self._tick(task)
        logger.info("Initial monitoring checks completed")

    async def _trigger(self, task: str) -> Any:
        logger.info("Triggering manual %s...", task)
        async with self._guards[task].hold():
            try:
                return await self._runners[task]()
            except Exception:
                logger.exception("Manual %s failed", task)
                raise

    async def trigger_health_check(self) -> "HealthCheckResult":
        return await self._trigger(HEALTH_TASK)

    async def trigger_alert_check(self) -> "list[ActiveAlert]":
        return await self._trigger(ALERT_TASK)

    async def trigger_quota_check(self) -> "list[QuotaAlert]":
        return await self._trigger(QUOTA_TASK)

    async def _run_health_check(self) -> "HealthCheckResult":
        result = await self._health.perform_health_check()
        logger.info(
            "Health check completed: %s (%d components checked)",
            result.overall.value,
            len(result.components),
        )
        unhealthy = result.unhealthy_components
        if unhealthy:
            logger.warning("Unhealthy components detected: %s", [c.name for c in unhealthy])
        return result

    async def _run_alert_check(self) -> "list[ActiveAlert]":
        fired = await self._alerts.check_alerts()
        logger.info("Alert check completed: %d alert(s) triggered", len(fired))
        return fired

    async def _run_quota_check(self) -> "list[QuotaAlert]":
        alerts = await self._quota.check_quota_alerts()
        if alerts:
            logger.warning("Quota alerts generated: %d", len(alerts))
            for alert in alerts:
                logger.warning("Quota alert [%s]: %s", alert.severity, alert.message)
        return alerts
