"""Condition evaluators, one per ConditionType.

Each evaluator reads live data through the EvaluationContext and returns
an EvaluationResult carrying the observed value so the alert message can
report it.
"""

import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from signwatch.alerts.models import AlertCondition, ConditionType, EvaluationResult
from signwatch.health.models import ComponentStatus
from signwatch.performance.models import RequestRecord
from signwatch.storage.request_log import RequestLogReader
from signwatch.uptime.tracker import availability_percentage

if TYPE_CHECKING:
    from signwatch.health.monitor import HealthMonitor
    from signwatch.quota.monitor import QuotaReader


@dataclass(frozen=True)
class EvaluationContext:
    """Live data sources available to evaluators during one alert check."""

    now: datetime
    request_log: RequestLogReader | None = None
    quota: "QuotaReader | None" = None
    health: "HealthMonitor | None" = None

    async def records_in_window(self, condition: AlertCondition) -> list[RequestRecord]:
        if self.request_log is None:
            raise RuntimeError("No request log reader configured")
        since = self.now - timedelta(minutes=condition.time_window_minutes)
        return await self.request_log.query(since, self.now)

    async def latest_records(self, limit: int) -> list[RequestRecord]:
        if self.request_log is None:
            raise RuntimeError("No request log reader configured")
        return await self.request_log.latest(limit, self.now)


Evaluator = Callable[[AlertCondition, EvaluationContext], Awaitable[EvaluationResult]]


async def evaluate_error_rate(condition: AlertCondition, ctx: EvaluationContext) -> EvaluationResult:
    records = await ctx.records_in_window(condition)
    if not records:
        return EvaluationResult(triggered=False, observed=0.0)
    failed = sum(1 for r in records if not r.success)
    rate = failed / len(records)
    return EvaluationResult(
        triggered=rate >= condition.threshold,
        observed=rate,
        detail=f"{failed}/{len(records)} requests failed",
    )


def _matches(record: RequestRecord, condition: AlertCondition) -> bool:
    if condition.error_types and record.error_type not in condition.error_types:
        return False
    if condition.endpoints and record.endpoint not in condition.endpoints:
        return False
    return True


async def evaluate_error_count(condition: AlertCondition, ctx: EvaluationContext) -> EvaluationResult:
    records = await ctx.records_in_window(condition)
    count = sum(1 for r in records if not r.success and _matches(r, condition))
    return EvaluationResult(triggered=count >= condition.threshold, observed=float(count))


async def evaluate_consecutive_failures(
    condition: AlertCondition, ctx: EvaluationContext
) -> EvaluationResult:
    # The run is not bounded by the time window, only by the threshold
    records = await ctx.latest_records(math.ceil(condition.threshold))
    run = 0
    for record in reversed(records):
        if record.success:
            break
        run += 1
    return EvaluationResult(triggered=run >= condition.threshold, observed=float(run))


async def evaluate_response_time(
    condition: AlertCondition, ctx: EvaluationContext
) -> EvaluationResult:
    records = await ctx.records_in_window(condition)
    samples = [r.latency_ms for r in records if r.latency_ms > 0]
    if not samples:
        return EvaluationResult(triggered=False, observed=0.0)
    average = sum(samples) / len(samples)
    return EvaluationResult(
        triggered=average >= condition.threshold,
        observed=average,
        detail=f"{len(samples)} samples",
    )


async def evaluate_quota_usage(condition: AlertCondition, ctx: EvaluationContext) -> EvaluationResult:
    if ctx.quota is None:
        raise RuntimeError("No quota reader configured")
    utilization = await ctx.quota.current_utilization()
    return EvaluationResult(triggered=utilization >= condition.threshold, observed=utilization)


async def evaluate_service_degradation(
    condition: AlertCondition, ctx: EvaluationContext
) -> EvaluationResult:
    if ctx.health is None:
        raise RuntimeError("No health monitor configured")
    latest = ctx.health.latest
    if latest is None or not latest.components:
        return EvaluationResult(triggered=False, observed=0.0)
    not_healthy = [c.name for c in latest.components if c.status != ComponentStatus.HEALTHY]
    fraction = len(not_healthy) / len(latest.components)
    return EvaluationResult(
        triggered=fraction >= condition.threshold,
        observed=fraction,
        detail=", ".join(not_healthy) or None,
    )


async def evaluate_uptime_threshold(
    condition: AlertCondition, ctx: EvaluationContext
) -> EvaluationResult:
    if ctx.health is None:
        raise RuntimeError("No health monitor configured")
    since = ctx.now - timedelta(minutes=condition.time_window_minutes)
    records = [r for r in ctx.health.history.snapshot() if r.timestamp >= since]
    availability = availability_percentage(records)
    return EvaluationResult(
        triggered=availability < condition.threshold,
        observed=availability,
        detail=f"{len(records)} checks",
    )


EVALUATORS: dict[ConditionType, Evaluator] = {
    ConditionType.ERROR_RATE: evaluate_error_rate,
    ConditionType.ERROR_COUNT: evaluate_error_count,
    ConditionType.CONSECUTIVE_FAILURES: evaluate_consecutive_failures,
    ConditionType.RESPONSE_TIME: evaluate_response_time,
    ConditionType.QUOTA_USAGE: evaluate_quota_usage,
    ConditionType.SERVICE_DEGRADATION: evaluate_service_degradation,
    ConditionType.UPTIME_THRESHOLD: evaluate_uptime_threshold,
}


async def evaluate(condition: AlertCondition, ctx: EvaluationContext) -> EvaluationResult:
    return await EVALUATORS[condition.type](condition, ctx)


def format_alert_message(name: str, condition: AlertCondition, result: EvaluationResult) -> str:
    """Human readable message naming the rule, the threshold and what was observed."""
    window = condition.time_window_minutes
    observed = result.observed if result.observed is not None else 0.0
    kind = condition.type

    if kind == ConditionType.ERROR_RATE:
        text = (
            f"error rate {observed * 100:.1f}% reached threshold {condition.threshold * 100:.1f}% "
            f"in the last {window} minutes"
        )
    elif kind == ConditionType.ERROR_COUNT:
        types = ", ".join(condition.error_types) if condition.error_types else "all types"
        text = (
            f"{observed:.0f} errors of type(s) {types} in the last {window} minutes "
            f"(threshold {condition.threshold:g})"
        )
    elif kind == ConditionType.CONSECUTIVE_FAILURES:
        text = f"{observed:.0f} consecutive request failures (threshold {condition.threshold:g})"
    elif kind == ConditionType.RESPONSE_TIME:
        text = (
            f"average response time {observed:.0f}ms reached threshold "
            f"{condition.threshold:g}ms in the last {window} minutes"
        )
    elif kind == ConditionType.QUOTA_USAGE:
        text = (
            f"quota utilization {observed * 100:.1f}% reached threshold "
            f"{condition.threshold * 100:.1f}%"
        )
    elif kind == ConditionType.SERVICE_DEGRADATION:
        text = (
            f"{observed * 100:.0f}% of components not healthy "
            f"(threshold {condition.threshold * 100:.0f}%)"
        )
    else:
        text = (
            f"availability {observed:.2f}% below threshold {condition.threshold:g}% "
            f"in the last {window} minutes"
        )

    message = f"{name}: {text}"
    if result.detail:
        message = f"{message} [{result.detail}]"
    return message
