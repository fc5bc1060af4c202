"""Performance aggregation over the request log."""

import logging
import math
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from signwatch.health.models import PerformanceSummary
from signwatch.performance.models import (
    HourlyBucket,
    PerformanceMetrics,
    RequestRecord,
    RequestTotals,
    ResponseTimeStats,
)
from signwatch.storage.request_log import RequestLogReader

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_TYPE = "Unknown"


def percentile(sorted_samples: Sequence[float], fraction: float) -> float:
    """Sort-then-index percentile: sorted[floor(fraction * n)].

    Returns 0 for an empty sample set.
    """
    if not sorted_samples:
        return 0.0
    index = min(math.floor(fraction * len(sorted_samples)), len(sorted_samples) - 1)
    return sorted_samples[index]


def latency_samples(records: Sequence[RequestRecord]) -> list[float]:
    """Sorted positive latencies; zero or negative means not measured."""
    return sorted(r.latency_ms for r in records if r.latency_ms > 0)


def compute_response_times(records: Sequence[RequestRecord]) -> ResponseTimeStats:
    samples = latency_samples(records)
    if not samples:
        return ResponseTimeStats()
    return ResponseTimeStats(
        average=sum(samples) / len(samples),
        median=percentile(samples, 0.5),
        p95=percentile(samples, 0.95),
        p99=percentile(samples, 0.99),
        min=samples[0],
        max=samples[-1],
    )


def compute_totals(records: Sequence[RequestRecord], hours: float) -> RequestTotals:
    total = len(records)
    if total == 0:
        return RequestTotals()
    successful = sum(1 for r in records if r.success)
    failed = total - successful
    return RequestTotals(
        total=total,
        successful=successful,
        failed=failed,
        success_rate=successful / total * 100,
        error_rate=failed / total * 100,
        throughput=total / hours if hours > 0 else float(total),
    )


def compute_error_breakdown(records: Sequence[RequestRecord]) -> dict[str, int]:
    counts = Counter(r.error_type or UNKNOWN_ERROR_TYPE for r in records if not r.success)
    return dict(counts.most_common())


def compute_trends(
    records: Sequence[RequestRecord], hours: int, now: datetime
) -> list[HourlyBucket]:
    buckets: list[HourlyBucket] = []
    for i in range(hours):
        start = now - timedelta(hours=hours - i)
        end = start + timedelta(hours=1)
        in_hour = [r for r in records if start <= r.timestamp < end]
        successful = sum(1 for r in in_hour if r.success)
        samples = [r.latency_ms for r in in_hour if r.latency_ms > 0]
        buckets.append(
            HourlyBucket(
                hour=i,
                start=start,
                requests=len(in_hour),
                successful_requests=successful,
                average_response_time=sum(samples) / len(samples) if samples else 0.0,
                success_rate=successful / len(in_hour) * 100 if in_hour else 100.0,
            )
        )
    return buckets


class PerformanceAggregator:
    """Computes PerformanceMetrics from a window of request records.

    Read-only: holds no state besides the reader it queries.
    """

    def __init__(self, reader: RequestLogReader) -> None:
        self._reader = reader

    async def get_records(self, minutes: float, now: datetime | None = None) -> list[RequestRecord]:
        now = now or datetime.now(tz=timezone.utc)
        return await self._reader.query(now - timedelta(minutes=minutes), now)

    async def get_metrics(self, hours: float = 24, now: datetime | None = None) -> PerformanceMetrics:
        """Compute metrics over the last `hours` hours.

        Args:
            hours: Window size; throughput is reported per hour of this window
            now: End of the window (defaults to the current time)

        Returns:
            PerformanceMetrics, all zero when the window holds no requests
        """
        now = now or datetime.now(tz=timezone.utc)
        records = await self.get_records(hours * 60, now)
        return self.compute(records, hours, now)

    @staticmethod
    def compute(
        records: Sequence[RequestRecord], hours: float, now: datetime | None = None
    ) -> PerformanceMetrics:
        now = now or datetime.now(tz=timezone.utc)
        return PerformanceMetrics(
            window_hours=hours,
            requests=compute_totals(records, hours),
            response_times=compute_response_times(records),
            error_breakdown=compute_error_breakdown(records),
            trends=compute_trends(records, math.ceil(hours), now) if records else [],
        )

    async def get_summary(self, now: datetime | None = None) -> PerformanceSummary:
        """Last-hour summary embedded in each HealthCheckResult."""
        metrics = await self.get_metrics(hours=1, now=now)
        return PerformanceSummary(
            average_response_time=metrics.response_times.average,
            p95_response_time=metrics.response_times.p95,
            throughput=metrics.requests.throughput,
            error_rate=metrics.requests.error_rate,
        )
