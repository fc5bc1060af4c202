"""Health monitoring package."""

from signwatch.health.checkers import (
    DatabaseHealthChecker,
    HealthChecker,
    HttpEndpointChecker,
    LatencyPolicy,
    SignatureHealthChecker,
)
from signwatch.health.history import UptimeHistory
from signwatch.health.models import (
    ComponentStatus,
    HealthCheckResult,
    ServiceComponent,
    UptimeRecord,
)
from signwatch.health.monitor import HealthMonitor, OverallStatusPolicy, compute_overall_status

# Note: default_checkers/init_health_monitor are not exported here to avoid
# circular imports. Import directly from signwatch.health.setup when needed.

__all__ = [
    "ComponentStatus",
    "DatabaseHealthChecker",
    "HealthCheckResult",
    "HealthChecker",
    "HealthMonitor",
    "HttpEndpointChecker",
    "LatencyPolicy",
    "OverallStatusPolicy",
    "ServiceComponent",
    "SignatureHealthChecker",
    "UptimeHistory",
    "UptimeRecord",
    "compute_overall_status",
]
