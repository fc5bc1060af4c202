"""Health monitoring models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ComponentStatus(str, Enum):
    """Status of a service component (and of the system as a whole)."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class QuotaStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ServiceComponent:
    """Result of probing a single component.

    Attributes:
        name: Component name (database, authentication, signature_generation, ...)
        status: Classified status of the component
        response_time_ms: Time the probe took in milliseconds
        last_checked_at: When the probe completed
        error: Error message if the probe failed or detected a problem
        metadata: Probe specific details (HTTP status, write test result, ...)
    """

    name: str
    status: ComponentStatus
    response_time_ms: float
    last_checked_at: datetime
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_up(self) -> bool:
        return self.status == ComponentStatus.HEALTHY


@dataclass(frozen=True)
class UptimeRecord:
    """One entry of the uptime history ring buffer.

    Attributes:
        timestamp: When the health check that produced this record ran
        status: Overall status of that check
        response_time_ms: Wall time of the whole health check
        per_component_up: Component name -> True if the component was healthy
    """

    timestamp: datetime
    status: ComponentStatus
    response_time_ms: float
    per_component_up: dict[str, bool]

    @property
    def is_up(self) -> bool:
        return self.status == ComponentStatus.HEALTHY


@dataclass(frozen=True)
class UptimeSummary:
    percentage: float = 100.0
    total_checks: int = 0
    successful_checks: int = 0
    downtime_minutes: float = 0.0
    last_downtime: datetime | None = None


@dataclass(frozen=True)
class PerformanceSummary:
    average_response_time: float = 0.0
    p95_response_time: float = 0.0
    throughput: float = 0.0
    error_rate: float = 0.0


@dataclass(frozen=True)
class QuotaSummary:
    used: int = 0
    limit: int = 0
    percentage: float = 0.0
    status: QuotaStatus = QuotaStatus.HEALTHY
    reset_date: datetime | None = None


@dataclass(frozen=True)
class HealthCheckResult:
    """Aggregate result of one health monitor cycle.

    Attributes:
        overall: HEALTHY, DEGRADED or UNHEALTHY, derived from components only
        timestamp: When this aggregate was computed
        components: Individual component results, in probe order
        uptime_summary: Availability over the retained history
        performance_summary: Request performance over the last hour
        quota_summary: Platform request quota usage
    """

    overall: ComponentStatus
    timestamp: datetime
    components: tuple[ServiceComponent, ...]
    uptime_summary: UptimeSummary = field(default_factory=UptimeSummary)
    performance_summary: PerformanceSummary = field(default_factory=PerformanceSummary)
    quota_summary: QuotaSummary = field(default_factory=QuotaSummary)

    def get_component(self, name: str) -> ServiceComponent | None:
        for component in self.components:
            if component.name == name:
                return component
        return None

    @property
    def unhealthy_components(self) -> list[ServiceComponent]:
        return [c for c in self.components if c.status == ComponentStatus.UNHEALTHY]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-safe dict for the snapshot store."""
        return {
            "overall": self.overall.value,
            "timestamp": self.timestamp.isoformat(),
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "response_time_ms": c.response_time_ms,
                    "error": c.error,
                }
                for c in self.components
            ],
            "uptime": {
                "percentage": self.uptime_summary.percentage,
                "total_checks": self.uptime_summary.total_checks,
                "successful_checks": self.uptime_summary.successful_checks,
                "downtime_minutes": self.uptime_summary.downtime_minutes,
            },
            "performance": {
                "average_response_time": self.performance_summary.average_response_time,
                "p95_response_time": self.performance_summary.p95_response_time,
                "throughput": self.performance_summary.throughput,
                "error_rate": self.performance_summary.error_rate,
            },
            "quota": {
                "used": self.quota_summary.used,
                "limit": self.quota_summary.limit,
                "percentage": self.quota_summary.percentage,
                "status": self.quota_summary.status.value,
            },
        }
