"""Request performance models."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class RequestRecord:
    """One request as read from the request log.

    Attributes:
        success: Whether the request succeeded
        latency_ms: Response time in milliseconds (non-positive means not measured)
        timestamp: When the request was served
        error_type: Classification label for failed requests
        endpoint: Path the request hit, if known
    """

    success: bool
    latency_ms: float
    timestamp: datetime
    error_type: str | None = None
    endpoint: str | None = None


@dataclass(frozen=True)
class RequestTotals:
    total: int = 0
    successful: int = 0
    failed: int = 0
    success_rate: float = 0.0
    error_rate: float = 0.0
    throughput: float = 0.0


@dataclass(frozen=True)
class ResponseTimeStats:
    average: float = 0.0
    median: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    min: float = 0.0
    max: float = 0.0


@dataclass(frozen=True)
class HourlyBucket:
    hour: int
    start: datetime
    requests: int
    successful_requests: int
    average_response_time: float
    success_rate: float


@dataclass(frozen=True)
class PerformanceMetrics:
    """Recomputed from the request log on every request; never persisted."""

    window_hours: float
    requests: RequestTotals = field(default_factory=RequestTotals)
    response_times: ResponseTimeStats = field(default_factory=ResponseTimeStats)
    error_breakdown: dict[str, int] = field(default_factory=dict)
    trends: list[HourlyBucket] = field(default_factory=list)
