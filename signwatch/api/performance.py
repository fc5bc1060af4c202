"""Performance metrics API endpoint."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from signwatch.api.deps import get_performance
from signwatch.performance.aggregator import PerformanceAggregator

router = APIRouter(prefix="/api/performance", tags=["performance"])


class RequestTotalsResponse(BaseModel):
    total: int
    successful: int
    failed: int
    success_rate: float
    error_rate: float
    throughput: float


class ResponseTimesResponse(BaseModel):
    average: float
    median: float
    p95: float
    p99: float
    min: float
    max: float


class HourlyBucketResponse(BaseModel):
    hour: int
    start: datetime
    requests: int
    successful_requests: int
    average_response_time: float
    success_rate: float


class PerformanceResponse(BaseModel):
    """Request performance over the requested window."""

    window_hours: float
    requests: RequestTotalsResponse
    response_times: ResponseTimesResponse
    error_breakdown: dict[str, int]
    trends: list[HourlyBucketResponse]


@router.get("", response_model=PerformanceResponse)
async def get_performance_metrics(
    hours: int = Query(default=24, ge=1, le=168),
    aggregator: PerformanceAggregator = Depends(get_performance),
) -> PerformanceResponse:
    """Get request totals, latency percentiles, error breakdown and hourly trends.

    Args:
        hours: Window size in hours (default 24, max 168)
    """
    metrics = await aggregator.get_metrics(hours=hours)
    totals = metrics.requests
    times = metrics.response_times

    return PerformanceResponse(
        window_hours=metrics.window_hours,
        requests=RequestTotalsResponse(
            total=totals.total,
            successful=totals.successful,
            failed=totals.failed,
            success_rate=totals.success_rate,
            error_rate=totals.error_rate,
            throughput=totals.throughput,
        ),
        response_times=ResponseTimesResponse(
            average=times.average,
            median=times.median,
            p95=times.p95,
            p99=times.p99,
            min=times.min,
            max=times.max,
        ),
        error_breakdown=metrics.error_breakdown,
        trends=[
            HourlyBucketResponse(
                hour=b.hour,
                start=b.start,
                requests=b.requests,
                successful_requests=b.successful_requests,
                average_response_time=b.average_response_time,
                success_rate=b.success_rate,
            )
            for b in metrics.trends
        ],
    )
