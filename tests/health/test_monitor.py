"""Tests for HealthMonitor service."""

import itertools
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from signwatch.health.history import UptimeHistory
from signwatch.health.models import (
    ComponentStatus,
    PerformanceSummary,
    QuotaStatus,
    QuotaSummary,
    ServiceComponent,
)
from signwatch.health.monitor import HealthMonitor, OverallStatusPolicy, compute_overall_status
from signwatch.storage.snapshots import KIND_HEALTH, KIND_UPTIME, InMemorySnapshotStore


def component(name: str, status: ComponentStatus) -> ServiceComponent:
    return ServiceComponent(
        name=name,
        status=status,
        response_time_ms=12.0,
        last_checked_at=datetime.now(tz=timezone.utc),
    )


def checker(name: str, status: ComponentStatus) -> AsyncMock:
    mock = AsyncMock()
    mock.name = name
    mock.check = AsyncMock(return_value=component(name, status))
    return mock


HEALTHY = ComponentStatus.HEALTHY
DEGRADED = ComponentStatus.DEGRADED
UNHEALTHY = ComponentStatus.UNHEALTHY
UNKNOWN = ComponentStatus.UNKNOWN


class TestComputeOverallStatus:
    """Tests for the overall status rule."""

    def test_all_healthy(self):
        components = [component("database", HEALTHY), component("api_sign", HEALTHY)]
        assert compute_overall_status(components) == HEALTHY

    def test_critical_component_unhealthy(self):
        components = [component("database", UNHEALTHY), component("api_sign", HEALTHY)]
        assert compute_overall_status(components) == UNHEALTHY

    def test_signature_generation_is_critical(self):
        components = [component("signature_generation", UNHEALTHY), component("db", HEALTHY)]
        assert compute_overall_status(components) == UNHEALTHY

    def test_one_non_critical_unhealthy_is_degraded(self):
        components = [component("database", HEALTHY), component("api_sign", UNHEALTHY)]
        assert compute_overall_status(components) == DEGRADED

    def test_three_non_critical_unhealthy_is_unhealthy(self):
        components = [
            component("api_health", UNHEALTHY),
            component("api_sign", UNHEALTHY),
            component("api_eulerstream", UNHEALTHY),
            component("database", HEALTHY),
        ]
        assert compute_overall_status(components) == UNHEALTHY

    def test_single_degraded_is_healthy(self):
        components = [component("database", DEGRADED), component("api_sign", HEALTHY)]
        assert compute_overall_status(components) == HEALTHY

    def test_two_degraded_is_degraded(self):
        components = [component("database", DEGRADED), component("api_sign", DEGRADED)]
        assert compute_overall_status(components) == DEGRADED

    def test_unknown_counts_as_neither(self):
        components = [component("database", UNKNOWN), component("api_sign", UNKNOWN)]
        assert compute_overall_status(components) == HEALTHY

    def test_no_components_is_healthy(self):
        assert compute_overall_status([]) == HEALTHY

    def test_configurable_thresholds(self):
        policy = OverallStatusPolicy(
            critical_components=frozenset(), unhealthy_count_critical=2, degraded_count_threshold=1
        )
        assert compute_overall_status([component("database", UNHEALTHY)], policy) == DEGRADED
        assert compute_overall_status([component("a", DEGRADED)], policy) == DEGRADED
        two_down = [component("a", UNHEALTHY), component("b", UNHEALTHY)]
        assert compute_overall_status(two_down, policy) == UNHEALTHY

    def test_order_independent(self):
        components = [
            component("database", HEALTHY),
            component("authentication", DEGRADED),
            component("edge_functions", DEGRADED),
            component("api_sign", UNHEALTHY),
        ]
        verdicts = {compute_overall_status(p) for p in itertools.permutations(components)}
        assert verdicts == {DEGRADED}


class TestHealthMonitor:
    """Tests for HealthMonitor aggregate service."""

    @pytest.mark.asyncio
    async def test_critical_database_down_makes_system_unhealthy(self):
        checkers = [
            checker("database", UNHEALTHY),
            checker("authentication", HEALTHY),
            checker("edge_functions", HEALTHY),
            checker("signature_generation", HEALTHY),
            checker("api_health", HEALTHY),
        ]
        monitor = HealthMonitor(checkers=checkers)

        result = await monitor.perform_health_check()

        assert result.overall == UNHEALTHY
        assert len(result.components) == 5
        assert [c.name for c in result.unhealthy_components] == ["database"]

    @pytest.mark.asyncio
    async def test_appends_one_record_per_check(self):
        monitor = HealthMonitor(checkers=[checker("database", HEALTHY), checker("api", DEGRADED)])

        await monitor.perform_health_check()
        await monitor.perform_health_check()

        records = monitor.history.snapshot()
        assert len(records) == 2
        assert records[0].timestamp <= records[1].timestamp
        assert records[-1].per_component_up == {"database": True, "api": False}

    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        monitor = HealthMonitor(
            checkers=[checker("database", HEALTHY)], history=UptimeHistory(capacity=3)
        )

        for _ in range(5):
            await monitor.perform_health_check()

        assert len(monitor.history) == 3

    @pytest.mark.asyncio
    async def test_raising_checker_counts_as_unhealthy(self):
        broken = AsyncMock()
        broken.name = "api_sign"
        broken.check = AsyncMock(side_effect=RuntimeError("boom"))
        monitor = HealthMonitor(checkers=[checker("database", HEALTHY), broken])

        result = await monitor.perform_health_check()

        sign = result.get_component("api_sign")
        assert sign.status == UNHEALTHY
        assert "boom" in sign.error
        assert result.overall == DEGRADED

    @pytest.mark.asyncio
    async def test_latest_and_get_component(self):
        monitor = HealthMonitor(checkers=[checker("database", HEALTHY)])
        assert monitor.latest is None
        assert monitor.get_component("database") is None

        result = await monitor.perform_health_check()

        assert monitor.latest is result
        assert monitor.get_component("database").status == HEALTHY
        assert monitor.get_component("missing") is None

    @pytest.mark.asyncio
    async def test_persists_snapshots(self):
        store = InMemorySnapshotStore()
        monitor = HealthMonitor(checkers=[checker("database", HEALTHY)], store=store)

        await monitor.perform_health_check()

        health = await store.list(KIND_HEALTH)
        uptime = await store.list(KIND_UPTIME)
        assert len(health) == 1
        assert health[0]["overall"] == "healthy"
        assert uptime[0]["components"] == {"database": True}

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_fail_check(self):
        store = AsyncMock()
        store.put = AsyncMock(side_effect=ConnectionError("store down"))
        monitor = HealthMonitor(checkers=[checker("database", HEALTHY)], store=store)

        result = await monitor.perform_health_check()

        assert result.overall == HEALTHY
        assert len(monitor.history) == 1

    @pytest.mark.asyncio
    async def test_embeds_summaries(self):
        performance = AsyncMock()
        performance.get_summary = AsyncMock(
            return_value=PerformanceSummary(average_response_time=120.0, error_rate=2.0)
        )
        quota = AsyncMock()
        quota.get_quota_summary = AsyncMock(
            return_value=QuotaSummary(used=10, limit=100, percentage=10.0)
        )
        monitor = HealthMonitor(
            checkers=[checker("database", HEALTHY)], performance=performance, quota=quota
        )

        result = await monitor.perform_health_check()

        assert result.performance_summary.average_response_time == 120.0
        assert result.quota_summary.used == 10
        assert result.uptime_summary.total_checks == 1
        assert result.uptime_summary.percentage == 100.0

    @pytest.mark.asyncio
    async def test_summary_failure_falls_back_to_defaults(self):
        performance = AsyncMock()
        performance.get_summary = AsyncMock(side_effect=RuntimeError("db gone"))
        quota = AsyncMock()
        quota.get_quota_summary = AsyncMock(side_effect=RuntimeError("db gone"))
        monitor = HealthMonitor(
            checkers=[checker("database", HEALTHY)], performance=performance, quota=quota
        )

        result = await monitor.perform_health_check()

        assert result.performance_summary == PerformanceSummary()
        assert result.quota_summary.status == QuotaStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_component_availability(self):
        api = checker("api", HEALTHY)
        monitor = HealthMonitor(checkers=[checker("database", HEALTHY), api])

        await monitor.perform_health_check()
        api.check.return_value = component("api", UNHEALTHY)
        await monitor.perform_health_check()

        assert monitor.get_component_availability("database") == 100.0
        assert monitor.get_component_availability("api") == 50.0
        assert monitor.get_component_availability("never_reported") == 0.0
