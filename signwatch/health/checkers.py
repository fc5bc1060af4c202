"""Health check implementations for service components."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from signwatch.health.models import ComponentStatus, ServiceComponent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class HealthChecker(Protocol):
    """Protocol for component probes."""

    name: str

    async def check(self) -> ServiceComponent:
        """Probe the component and return its classified status."""
        ...


@dataclass(frozen=True)
class LatencyPolicy:
    """Two-tier response time classification.

    Attributes:
        healthy_below_ms: Responses faster than this are HEALTHY
        degraded_below_ms: Responses faster than this are DEGRADED, slower UNHEALTHY
    """

    healthy_below_ms: float = 500.0
    degraded_below_ms: float = 2000.0

    def classify(self, response_time_ms: float) -> ComponentStatus:
        if response_time_ms < self.healthy_below_ms:
            return ComponentStatus.HEALTHY
        if response_time_ms < self.degraded_below_ms:
            return ComponentStatus.DEGRADED
        return ComponentStatus.UNHEALTHY


@dataclass
class ProbeOutcome:
    """What a probe body observed, before latency classification.

    status overrides the latency tier when set (e.g. a failed write test
    downgrades the component to DEGRADED even if it answered quickly).
    """

    status: ComponentStatus | None = None
    error: str | None = None
    metadata: dict[str, Any] | None = None


def _worst(a: ComponentStatus, b: ComponentStatus) -> ComponentStatus:
    order = [ComponentStatus.HEALTHY, ComponentStatus.DEGRADED, ComponentStatus.UNHEALTHY]
    return max(a, b, key=lambda s: order.index(s) if s in order else len(order))


class TimedChecker(ABC):
    """Base class: times the probe body, enforces its timeout and classifies.

    Any exception raised by the body (including the timeout) yields an
    UNHEALTHY component; it never propagates to the monitor.
    """

    def __init__(
        self,
        name: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        policy: LatencyPolicy | None = None,
    ) -> None:
        self.name = name
        self._timeout = timeout_seconds
        self._policy = policy or LatencyPolicy()

    @abstractmethod
    async def _probe(self) -> ProbeOutcome:
        """Run the probe body. Raising marks the component UNHEALTHY."""

    async def check(self) -> ServiceComponent:
        start = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(self._probe(), timeout=self._timeout)
        except TimeoutError:
            return self._result(
                ComponentStatus.UNHEALTHY,
                start,
                error=f"Health check timeout after {self._timeout:.1f}s",
            )
        except Exception as e:
            logger.debug("Probe %s failed: %s", self.name, e)
            return self._result(ComponentStatus.UNHEALTHY, start, error=str(e) or type(e).__name__)

        response_time_ms = (time.perf_counter() - start) * 1000
        status = self._policy.classify(response_time_ms)
        if outcome.status is not None:
            status = _worst(status, outcome.status)
        return ServiceComponent(
            name=self.name,
            status=status,
            response_time_ms=response_time_ms,
            last_checked_at=datetime.now(tz=timezone.utc),
            error=outcome.error,
            metadata=outcome.metadata or {},
        )

    def _result(self, status: ComponentStatus, start: float, error: str) -> ServiceComponent:
        return ServiceComponent(
            name=self.name,
            status=status,
            response_time_ms=(time.perf_counter() - start) * 1000,
            last_checked_at=datetime.now(tz=timezone.utc),
            error=error,
        )


class DatabaseHealthChecker(TimedChecker):
    """Storage backend probe: a read test followed by a write test."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        name: str = "database",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        policy: LatencyPolicy | None = None,
    ) -> None:
        """Initialize with an async session factory.

        Args:
            session_factory: Callable returning an AsyncSession context manager
            name: Component name reported in results
            timeout_seconds: Probe timeout
            policy: Latency classification policy
        """
        super().__init__(name, timeout_seconds, policy)
        self._session_factory = session_factory

    async def _probe(self) -> ProbeOutcome:
        from signwatch.models.snapshot import SnapshotRecord

        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

            try:
                now = datetime.now(tz=timezone.utc)
                existing = await session.scalar(
                    select(SnapshotRecord).where(
                        SnapshotRecord.kind == "probe", SnapshotRecord.key == "db-health-test"
                    )
                )
                if existing is None:
                    session.add(
                        SnapshotRecord(
                            kind="probe",
                            key="db-health-test",
                            data={"test": True},
                            created_at=now,
                            updated_at=now,
                        )
                    )
                else:
                    existing.updated_at = now
                await session.commit()
            except Exception as e:
                await session.rollback()
                return ProbeOutcome(
                    status=ComponentStatus.DEGRADED,
                    error=f"Write test failed: {e}",
                    metadata={"write_test_passed": False},
                )

        return ProbeOutcome(metadata={"write_test_passed": True})


class HttpEndpointChecker(TimedChecker):
    """Probe an HTTP endpoint; any non-2xx response is UNHEALTHY."""

    def __init__(
        self,
        name: str,
        url: str,
        client: httpx.AsyncClient,
        method: str = "GET",
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        policy: LatencyPolicy | None = None,
    ) -> None:
        super().__init__(name, timeout_seconds, policy)
        self._url = url
        self._client = client
        self._method = method
        self._json = json
        self._headers = dict(headers or {})
        self._headers.setdefault("User-Agent", "HealthMonitor/1.0")

    async def _probe(self) -> ProbeOutcome:
        response = await self._client.request(
            self._method, self._url, json=self._json, headers=self._headers
        )
        metadata = {"http_status": response.status_code, "url": self._url}
        if not response.is_success:
            return ProbeOutcome(
                status=ComponentStatus.UNHEALTHY,
                error=f"HTTP {response.status_code}",
                metadata=metadata,
            )
        return self._inspect(response, metadata)

    def _inspect(self, response: httpx.Response, metadata: dict[str, Any]) -> ProbeOutcome:
        return ProbeOutcome(metadata=metadata)


class SignatureHealthChecker(HttpEndpointChecker):
    """Exercise the signing call path with a sample room URL.

    A 2xx body reporting success=false means the path is reachable but
    not producing signatures: DEGRADED.
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient,
        test_room_url: str,
        headers: Mapping[str, str] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        policy: LatencyPolicy | None = None,
    ) -> None:
        super().__init__(
            "signature_generation",
            url,
            client,
            method="POST",
            json={"roomUrl": test_room_url},
            headers=headers,
            timeout_seconds=timeout_seconds,
            policy=policy,
        )
        self._test_room_url = test_room_url

    def _inspect(self, response: httpx.Response, metadata: dict[str, Any]) -> ProbeOutcome:
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return ProbeOutcome(
                status=ComponentStatus.DEGRADED,
                error="Signature response is not a JSON object",
                metadata=metadata,
            )

        data = body.get("data")
        if not isinstance(data, dict):
            data = {}
        metadata = {
            **metadata,
            "test_url": self._test_room_url,
            "signature_generated": bool(data.get("signature")),
        }
        if not body.get("success"):
            return ProbeOutcome(
                status=ComponentStatus.DEGRADED,
                error=str(body.get("error") or "Signature generation reported failure"),
                metadata=metadata,
            )
        return ProbeOutcome(metadata=metadata)
