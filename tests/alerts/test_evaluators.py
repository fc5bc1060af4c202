"""Tests for alert condition evaluators."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from signwatch.alerts.evaluators import EVALUATORS, EvaluationContext, evaluate, format_alert_message
from signwatch.alerts.models import AlertCondition, ConditionType, EvaluationResult
from signwatch.health.history import UptimeHistory
from signwatch.health.models import (
    ComponentStatus,
    HealthCheckResult,
    ServiceComponent,
    UptimeRecord,
)
from signwatch.performance.models import RequestRecord
from signwatch.storage.request_log import InMemoryRequestLog

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def requests(successes: int, failures: int, error_type: str | None = None) -> list[RequestRecord]:
    """successes then failures, spread over the last 10 minutes."""
    total = successes + failures
    return [
        RequestRecord(
            success=i < successes,
            latency_ms=100.0,
            timestamp=NOW - timedelta(seconds=600 * (total - i) / total),
            error_type=None if i < successes else error_type,
        )
        for i in range(total)
    ]


def ctx(records=(), **kwargs) -> EvaluationContext:
    return EvaluationContext(now=NOW, request_log=InMemoryRequestLog(list(records)), **kwargs)


def condition(kind: ConditionType, threshold: float, window: int = 15, **kwargs) -> AlertCondition:
    return AlertCondition(kind, threshold=threshold, time_window_minutes=window, **kwargs)


class TestEvaluatorTable:
    def test_every_condition_type_has_an_evaluator(self):
        assert set(EVALUATORS) == set(ConditionType)


class TestErrorRate:
    @pytest.mark.asyncio
    async def test_twelve_of_hundred_triggers(self):
        result = await evaluate(
            condition(ConditionType.ERROR_RATE, 0.1), ctx(requests(88, 12))
        )
        assert result.triggered
        assert result.observed == pytest.approx(0.12)

    @pytest.mark.asyncio
    async def test_eight_of_hundred_does_not_trigger(self):
        result = await evaluate(condition(ConditionType.ERROR_RATE, 0.1), ctx(requests(92, 8)))
        assert not result.triggered

    @pytest.mark.asyncio
    async def test_empty_window_does_not_trigger(self):
        result = await evaluate(condition(ConditionType.ERROR_RATE, 0.0), ctx())
        assert not result.triggered

    @pytest.mark.asyncio
    async def test_records_outside_window_ignored(self):
        old = [
            RequestRecord(success=False, latency_ms=1, timestamp=NOW - timedelta(hours=1))
        ] * 50
        result = await evaluate(
            condition(ConditionType.ERROR_RATE, 0.1), ctx(old + requests(10, 0))
        )
        assert not result.triggered


class TestErrorCount:
    @pytest.mark.asyncio
    async def test_filters_by_error_type(self):
        records = requests(0, 3, "DATABASE_ERROR") + requests(0, 5, "OTHER")
        cond = condition(
            ConditionType.ERROR_COUNT, 3, window=15, error_types=("DATABASE_ERROR",)
        )

        result = await evaluate(cond, ctx(records))

        assert result.triggered
        assert result.observed == 3

    @pytest.mark.asyncio
    async def test_below_threshold(self):
        cond = condition(ConditionType.ERROR_COUNT, 5, error_types=("SIGNATURE_GENERATION_ERROR",))
        result = await evaluate(cond, ctx(requests(0, 4, "SIGNATURE_GENERATION_ERROR")))
        assert not result.triggered


class TestConsecutiveFailures:
    @pytest.mark.asyncio
    async def test_counts_trailing_run(self):
        result = await evaluate(
            condition(ConditionType.CONSECUTIVE_FAILURES, 10), ctx(requests(5, 10))
        )
        assert result.triggered
        assert result.observed == 10

    @pytest.mark.asyncio
    async def test_success_breaks_run(self):
        records = requests(0, 9) + [
            RequestRecord(success=True, latency_ms=10, timestamp=NOW - timedelta(seconds=1))
        ]
        result = await evaluate(condition(ConditionType.CONSECUTIVE_FAILURES, 5), ctx(records))
        assert not result.triggered
        assert result.observed == 0

    @pytest.mark.asyncio
    async def test_run_older_than_window_still_counts(self):
        # No traffic since the failures ended six minutes ago
        records = [
            RequestRecord(
                success=False,
                latency_ms=100.0,
                timestamp=NOW - timedelta(minutes=6, seconds=i),
            )
            for i in range(10)
        ]

        result = await evaluate(
            condition(ConditionType.CONSECUTIVE_FAILURES, 10, window=5), ctx(records)
        )

        assert result.triggered
        assert result.observed == 10


class TestResponseTime:
    @pytest.mark.asyncio
    async def test_average_latency(self):
        records = [
            RequestRecord(success=True, latency_ms=ms, timestamp=NOW - timedelta(minutes=1))
            for ms in (4000, 7000, 0)
        ]
        result = await evaluate(condition(ConditionType.RESPONSE_TIME, 5000), ctx(records))
        assert result.triggered
        assert result.observed == 5500


class TestQuotaUsage:
    @pytest.mark.asyncio
    async def test_utilization(self):
        quota = AsyncMock()
        quota.current_utilization = AsyncMock(return_value=0.95)

        result = await evaluate(condition(ConditionType.QUOTA_USAGE, 0.9), ctx(quota=quota))

        assert result.triggered

    @pytest.mark.asyncio
    async def test_missing_reader_raises(self):
        with pytest.raises(RuntimeError):
            await evaluate(condition(ConditionType.QUOTA_USAGE, 0.9), ctx())


def health_with(*statuses: ComponentStatus) -> MagicMock:
    components = tuple(
        ServiceComponent(
            name=f"c{i}", status=s, response_time_ms=1.0, last_checked_at=NOW
        )
        for i, s in enumerate(statuses)
    )
    health = MagicMock()
    health.latest = HealthCheckResult(
        overall=ComponentStatus.HEALTHY, timestamp=NOW, components=components
    )
    return health


class TestServiceDegradation:
    @pytest.mark.asyncio
    async def test_half_not_healthy_triggers(self):
        health = health_with(
            ComponentStatus.HEALTHY,
            ComponentStatus.DEGRADED,
            ComponentStatus.UNKNOWN,
            ComponentStatus.HEALTHY,
        )
        result = await evaluate(
            condition(ConditionType.SERVICE_DEGRADATION, 0.5), ctx(health=health)
        )
        assert result.triggered
        assert result.observed == 0.5

    @pytest.mark.asyncio
    async def test_no_result_yet(self):
        health = MagicMock()
        health.latest = None
        result = await evaluate(
            condition(ConditionType.SERVICE_DEGRADATION, 0.5), ctx(health=health)
        )
        assert not result.triggered


class TestUptimeThreshold:
    @pytest.mark.asyncio
    async def test_low_availability_triggers(self):
        history = UptimeHistory()
        for i, status in enumerate([ComponentStatus.HEALTHY] * 9 + [ComponentStatus.UNHEALTHY]):
            history.append(
                UptimeRecord(
                    timestamp=NOW - timedelta(minutes=30 - i),
                    status=status,
                    response_time_ms=1.0,
                    per_component_up={},
                )
            )
        health = MagicMock()
        health.history = history

        result = await evaluate(
            condition(ConditionType.UPTIME_THRESHOLD, 99.0, window=60), ctx(health=health)
        )

        assert result.triggered
        assert result.observed == 90.0

    @pytest.mark.asyncio
    async def test_empty_history_does_not_trigger(self):
        health = MagicMock()
        health.history = UptimeHistory()
        result = await evaluate(
            condition(ConditionType.UPTIME_THRESHOLD, 99.0, window=60), ctx(health=health)
        )
        assert not result.triggered


class TestFormatAlertMessage:
    def test_error_rate_message(self):
        message = format_alert_message(
            "High Error Rate",
            condition(ConditionType.ERROR_RATE, 0.1),
            EvaluationResult(triggered=True, observed=0.12, detail="12/100 requests failed"),
        )
        assert message == (
            "High Error Rate: error rate 12.0% reached threshold 10.0% in the last 15 minutes "
            "[12/100 requests failed]"
        )

    def test_every_type_starts_with_rule_name(self):
        for kind in ConditionType:
            message = format_alert_message(
                "Rule", condition(kind, 1), EvaluationResult(triggered=True, observed=1.0)
            )
            assert message.startswith("Rule: ")
