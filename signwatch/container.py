"""Composition root: wires every monitoring service from Settings.

Usage:
    container = build_container(Settings())
    await container.startup()
    ...
    await container.shutdown()
"""

import logging
from dataclasses import dataclass, field

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from signwatch.alerts.channels import AlertChannel, LogChannel, WebhookChannel
from signwatch.alerts.engine import AlertingEngine
from signwatch.config import Settings
from signwatch.db.database import create_engine, create_session_factory, create_tables
from signwatch.health.checkers import HealthChecker
from signwatch.health.monitor import HealthMonitor
from signwatch.health.setup import default_checkers, init_health_monitor
from signwatch.performance.aggregator import PerformanceAggregator
from signwatch.quota.monitor import QuotaMonitor, SqlQuotaUsageSource
from signwatch.storage.request_log import RequestLogReader, SqlRequestLogReader
from signwatch.storage.snapshots import SnapshotStore, SqlSnapshotStore
from signwatch.workers.scheduler import MonitoringScheduler

logger = logging.getLogger(__name__)


@dataclass
class MonitoringContainer:
    """Every long-lived service, constructed once and passed explicitly."""

    settings: Settings
    health: HealthMonitor
    performance: PerformanceAggregator
    quota: QuotaMonitor
    alerts: AlertingEngine
    scheduler: MonitoringScheduler
    store: SnapshotStore
    request_log: RequestLogReader
    engine: AsyncEngine | None = None
    http_client: httpx.AsyncClient | None = None
    start_scheduler: bool = True
    _started: bool = field(default=False, repr=False)

    async def startup(self) -> None:
        """Create tables and start the scheduler (if enabled)."""
        if self._started:
            return
        if self.engine is not None:
            await create_tables(self.engine)
        if self.start_scheduler:
            await self.scheduler.start()
        self._started = True
        logger.info("Monitoring services started")

    async def shutdown(self) -> None:
        self.scheduler.stop()
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()
        self._started = False
        logger.info("Monitoring services stopped")


def default_channels(settings: Settings) -> list[AlertChannel]:
    channels: list[AlertChannel] = [LogChannel()]
    if settings.alert_webhook_url:
        channels.append(WebhookChannel(settings.alert_webhook_url))
    return channels


def build_container(
    settings: Settings | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    checkers: list[HealthChecker] | None = None,
    http_client: httpx.AsyncClient | None = None,
    channels: list[AlertChannel] | None = None,
    start_scheduler: bool = True,
) -> MonitoringContainer:
    """Build the service graph.

    Args:
        settings: Runtime settings (read from the environment when None)
        session_factory: Use this session factory instead of one built from
            settings.database_url; tables are then not created on startup
        checkers: Probe set overriding the default one
        http_client: Shared HTTP client for probes
        channels: Alert sinks overriding the defaults
        start_scheduler: Start the scheduler on startup()

    Returns:
        MonitoringContainer ready for startup()
    """
    settings = settings or Settings()

    engine: AsyncEngine | None = None
    if session_factory is None:
        engine = create_engine(settings.database_url, echo=settings.debug)
        session_factory = create_session_factory(engine)

    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.probe_timeout_seconds)

    store = SqlSnapshotStore(session_factory)
    request_log = SqlRequestLogReader(session_factory)
    performance = PerformanceAggregator(request_log)
    quota = QuotaMonitor(
        SqlQuotaUsageSource(session_factory), request_budget=settings.quota_request_budget
    )

    if checkers is None:
        checkers = default_checkers(settings, session_factory, http_client)
    health = init_health_monitor(
        settings, checkers, store=store, performance=performance, quota=quota
    )

    alerts = AlertingEngine(
        request_log=request_log,
        quota=quota,
        health=health,
        store=store,
        channels=channels if channels is not None else default_channels(settings),
    )

    scheduler = MonitoringScheduler(
        health,
        alerts,
        quota,
        health_interval_seconds=settings.health_interval_seconds,
        alert_interval_seconds=settings.alert_interval_seconds,
        quota_interval_seconds=settings.quota_interval_seconds,
        initial_run_delay_seconds=settings.initial_run_delay_seconds,
    )

    return MonitoringContainer(
        settings=settings,
        health=health,
        performance=performance,
        quota=quota,
        alerts=alerts,
        scheduler=scheduler,
        store=store,
        request_log=request_log,
        engine=engine,
        http_client=http_client,
        start_scheduler=start_scheduler,
    )
