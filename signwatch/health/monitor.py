"""Health monitoring service that aggregates component health checks."""

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from signwatch.health.checkers import HealthChecker
from signwatch.health.history import DEFAULT_CAPACITY, UptimeHistory
from signwatch.health.models import (
    ComponentStatus,
    HealthCheckResult,
    PerformanceSummary,
    QuotaSummary,
    ServiceComponent,
    UptimeRecord,
    UptimeSummary,
)
from signwatch.storage.snapshots import KIND_HEALTH, KIND_UPTIME, SnapshotStore
from signwatch.uptime.tracker import component_availability, summarize_uptime

if TYPE_CHECKING:
    from signwatch.performance.aggregator import PerformanceAggregator
    from signwatch.quota.monitor import QuotaMonitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverallStatusPolicy:
    """Thresholds for deriving the overall status from component statuses.

    Attributes:
        critical_components: Components whose failure alone makes the system UNHEALTHY
        unhealthy_count_critical: This many UNHEALTHY components make the system UNHEALTHY
        degraded_count_threshold: This many DEGRADED components make the system DEGRADED
    """

    critical_components: frozenset[str] = frozenset({"database", "signature_generation"})
    unhealthy_count_critical: int = 3
    degraded_count_threshold: int = 2


def compute_overall_status(
    components: Iterable[ServiceComponent],
    policy: OverallStatusPolicy | None = None,
) -> ComponentStatus:
    """Derive the system verdict from component statuses.

    Order independent: only the multiset of (name, status) pairs matters.
    UNKNOWN components count neither as unhealthy nor as degraded.
    """
    policy = policy or OverallStatusPolicy()
    components = list(components)
    unhealthy = [c for c in components if c.status == ComponentStatus.UNHEALTHY]
    degraded_count = sum(1 for c in components if c.status == ComponentStatus.DEGRADED)

    critical_down = any(c.name in policy.critical_components for c in unhealthy)
    if critical_down or len(unhealthy) >= policy.unhealthy_count_critical:
        return ComponentStatus.UNHEALTHY

    if unhealthy or degraded_count >= policy.degraded_count_threshold:
        return ComponentStatus.DEGRADED

    return ComponentStatus.HEALTHY


class HealthMonitor:
    """Runs all probes concurrently and records the aggregate result.

    Each cycle appends one UptimeRecord to the bounded history and persists
    a snapshot of the result. Summary and persistence failures are logged
    and never fail the check.
    """

    def __init__(
        self,
        checkers: Sequence[HealthChecker],
        store: SnapshotStore | None = None,
        performance: "PerformanceAggregator | None" = None,
        quota: "QuotaMonitor | None" = None,
        history: UptimeHistory | None = None,
        policy: OverallStatusPolicy | None = None,
    ) -> None:
        """Initialize with the probe set and optional collaborators.

        Args:
            checkers: HealthChecker implementations, one per component
            store: Snapshot store for persisting results (optional)
            performance: Aggregator for the embedded performance summary
            quota: Quota monitor for the embedded quota summary
            history: Uptime ring buffer (a 1440-entry buffer by default)
            policy: Overall status thresholds
        """
        self._checkers = list(checkers)
        self._store = store
        self._performance = performance
        self._quota = quota
        self._history = history if history is not None else UptimeHistory(DEFAULT_CAPACITY)
        self._policy = policy or OverallStatusPolicy()
        self._latest: HealthCheckResult | None = None

    @property
    def latest(self) -> HealthCheckResult | None:
        """Most recent HealthCheckResult, None before the first check."""
        return self._latest

    @property
    def history(self) -> UptimeHistory:
        return self._history

    @property
    def component_names(self) -> list[str]:
        return [c.name for c in self._checkers]

    async def perform_health_check(self) -> HealthCheckResult:
        """Probe every component and aggregate.

        Returns:
            HealthCheckResult with overall status and individual component statuses
        """
        start = time.perf_counter()

        # Fan out; a slow probe does not cancel the others
        results = await asyncio.gather(
            *[checker.check() for checker in self._checkers],
            return_exceptions=True,
        )

        components: list[ServiceComponent] = []
        for checker, result in zip(self._checkers, results):
            if isinstance(result, BaseException):
                # Checker itself failed outside its own error handling
                components.append(
                    ServiceComponent(
                        name=getattr(checker, "name", "unknown"),
                        status=ComponentStatus.UNHEALTHY,
                        response_time_ms=(time.perf_counter() - start) * 1000,
                        last_checked_at=datetime.now(tz=timezone.utc),
                        error=f"Checker error: {result}",
                    )
                )
            else:
                components.append(result)

        overall = compute_overall_status(components, self._policy)
        now = datetime.now(tz=timezone.utc)

        self._history.append(
            UptimeRecord(
                timestamp=now,
                status=overall,
                response_time_ms=(time.perf_counter() - start) * 1000,
                per_component_up={c.name: c.is_up for c in components},
            )
        )

        result = HealthCheckResult(
            overall=overall,
            timestamp=now,
            components=tuple(components),
            uptime_summary=self._uptime_summary(now),
            performance_summary=await self._performance_summary(now),
            quota_summary=await self._quota_summary(),
        )
        self._latest = result

        await self._persist(result)
        return result

    def get_uptime_history(self, hours: float = 24) -> list[UptimeRecord]:
        """Records from the last `hours` hours, bounded by what the buffer retains."""
        return self._history.window(hours)

    def get_component_availability(self, name: str, hours: float = 24) -> float:
        """Percentage of checks in the window where `name` was healthy (100 if none)."""
        return component_availability(self.get_uptime_history(hours), name)

    def get_component(self, name: str) -> ServiceComponent | None:
        if self._latest is None:
            return None
        return self._latest.get_component(name)

    def _uptime_summary(self, now: datetime) -> UptimeSummary:
        try:
            return summarize_uptime(self._history.snapshot(), now)
        except Exception as e:
            logger.warning("Failed to compute uptime summary: %s", e)
            return UptimeSummary()

    async def _performance_summary(self, now: datetime) -> PerformanceSummary:
        if self._performance is None:
            return PerformanceSummary()
        try:
            return await self._performance.get_summary(now)
        except Exception as e:
            logger.warning("Failed to get performance metrics: %s", e)
            return PerformanceSummary()

    async def _quota_summary(self) -> QuotaSummary:
        if self._quota is None:
            return QuotaSummary()
        try:
            return await self._quota.get_quota_summary()
        except Exception as e:
            logger.warning("Failed to get quota status: %s", e)
            return QuotaSummary()

    async def _persist(self, result: HealthCheckResult) -> None:
        if self._store is None:
            return
        stamp = int(result.timestamp.timestamp() * 1000)
        try:
            await self._store.put(KIND_HEALTH, f"health-{stamp}", result.to_dict())
            await self._store.put(
                KIND_UPTIME,
                f"uptime-{stamp}",
                {
                    "timestamp": result.timestamp.isoformat(),
                    "status": result.overall.value,
                    "components": {c.name: c.is_up for c in result.components},
                },
            )
        except Exception as e:
            logger.error("Failed to store health check result: %s", e)
