"""Health monitoring initialization."""

from collections.abc import Callable

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from signwatch.config import Settings
from signwatch.health.checkers import (
    DatabaseHealthChecker,
    HealthChecker,
    HttpEndpointChecker,
    LatencyPolicy,
    SignatureHealthChecker,
)
from signwatch.health.history import UptimeHistory
from signwatch.health.monitor import HealthMonitor, OverallStatusPolicy
from signwatch.performance.aggregator import PerformanceAggregator
from signwatch.quota.monitor import QuotaMonitor
from signwatch.storage.snapshots import SnapshotStore


def default_checkers(
    settings: Settings,
    session_factory: Callable[[], AsyncSession],
    client: httpx.AsyncClient,
) -> list[HealthChecker]:
    """Build the probe set: storage, auth, edge functions, signing path, endpoints.

    Auth and edge function probes are only added when their URLs are configured.
    """
    policy = LatencyPolicy(
        healthy_below_ms=settings.healthy_below_ms,
        degraded_below_ms=settings.degraded_below_ms,
    )
    timeout = settings.probe_timeout_seconds
    base_url = settings.app_base_url.rstrip("/")
    auth_headers = (
        {"Authorization": f"Bearer {settings.service_token}"} if settings.service_token else {}
    )

    checkers: list[HealthChecker] = [
        DatabaseHealthChecker(session_factory, timeout_seconds=timeout, policy=policy),
    ]

    if settings.auth_health_url:
        checkers.append(
            HttpEndpointChecker(
                "authentication",
                settings.auth_health_url,
                client,
                headers=auth_headers,
                timeout_seconds=timeout,
                policy=policy,
            )
        )

    if settings.edge_function_url:
        checkers.append(
            HttpEndpointChecker(
                "edge_functions",
                settings.edge_function_url,
                client,
                headers=auth_headers,
                timeout_seconds=timeout,
                policy=policy,
            )
        )

    checkers.append(
        SignatureHealthChecker(
            f"{base_url}{settings.signature_path}",
            client,
            test_room_url=settings.signature_test_room_url,
            headers=auth_headers,
            timeout_seconds=timeout,
            policy=policy,
        )
    )

    for name, path in settings.api_endpoints.items():
        checkers.append(
            HttpEndpointChecker(
                name, f"{base_url}{path}", client, timeout_seconds=timeout, policy=policy
            )
        )

    return checkers


def init_health_monitor(
    settings: Settings,
    checkers: list[HealthChecker],
    store: SnapshotStore | None = None,
    performance: PerformanceAggregator | None = None,
    quota: QuotaMonitor | None = None,
) -> HealthMonitor:
    """Create a HealthMonitor configured from settings.

    Returns:
        Configured HealthMonitor instance
    """
    policy = OverallStatusPolicy(
        critical_components=frozenset(settings.critical_components),
        unhealthy_count_critical=settings.unhealthy_count_critical,
        degraded_count_threshold=settings.degraded_count_threshold,
    )
    return HealthMonitor(
        checkers=checkers,
        store=store,
        performance=performance,
        quota=quota,
        history=UptimeHistory(settings.history_capacity),
        policy=policy,
    )
