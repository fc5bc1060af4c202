"""Tests for health, performance and uptime API endpoints."""

from datetime import datetime, timedelta, timezone

import pytest

from signwatch.health.models import ComponentStatus
from signwatch.models.request_log import RequestLog


class TestHealthEndpoints:
    """Tests for /health and /api/health endpoints."""

    @pytest.mark.asyncio
    async def test_simple_health_returns_ok(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_runs_first_check_on_demand(self, client, container):
        assert container.health.latest is None

        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["overall_status"] == "healthy"
        assert [c["name"] for c in data["components"]] == [
            "database",
            "authentication",
            "signature_generation",
            "api_health",
        ]
        assert data["uptime"]["total_checks"] == 1
        assert data["quota"]["status"] == "healthy"
        assert container.health.latest is not None

    @pytest.mark.asyncio
    async def test_returns_503_when_critical_component_down(self, client, checkers):
        checkers["database"].status = ComponentStatus.UNHEALTHY

        response = await client.post("/api/health/check")

        assert response.status_code == 503
        assert response.json()["overall_status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_get_returns_latest_without_probing(self, client, checkers, container):
        await client.post("/api/health/check")
        checkers["database"].status = ComponentStatus.UNHEALTHY

        response = await client.get("/api/health")

        assert response.status_code == 200
        assert len(container.health.history) == 1

    @pytest.mark.asyncio
    async def test_component_endpoint(self, client):
        await client.post("/api/health/check")

        response = await client.get("/api/health/component/database")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "database"
        assert data["status"] == "healthy"
        assert data["availability"] == 100.0

    @pytest.mark.asyncio
    async def test_unknown_component_returns_404(self, client):
        await client.post("/api/health/check")

        response = await client.get("/api/health/component/redis")

        assert response.status_code == 404


class TestUptimeEndpoint:
    @pytest.mark.asyncio
    async def test_statistics_after_checks(self, client, checkers):
        await client.post("/api/health/check")
        checkers["signature_generation"].status = ComponentStatus.UNHEALTHY
        await client.post("/api/health/check")

        response = await client.get("/api/uptime")

        assert response.status_code == 200
        data = response.json()
        assert data["total_checks"] == 2
        assert data["percentage"] == 50.0
        assert len(data["incidents"]) == 1
        assert data["incidents"][0]["is_open"] is True
        assert data["incidents"][0]["severity"] == "critical"
        assert data["components"]["signature_generation"]["availability"] == 50.0

    @pytest.mark.asyncio
    async def test_filter_by_component(self, client):
        await client.post("/api/health/check")

        response = await client.get("/api/uptime", params={"component": "database"})

        assert response.status_code == 200
        assert set(response.json()["components"]) == {"database"}

    @pytest.mark.asyncio
    async def test_unknown_component_returns_404(self, client):
        response = await client.get("/api/uptime", params={"component": "redis"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_window(self, client):
        response = await client.get("/api/uptime", params={"hours": 0})
        assert response.status_code == 422


class TestPerformanceEndpoint:
    @pytest.mark.asyncio
    async def test_metrics_from_request_log(self, client, db_session):
        now = datetime.now(tz=timezone.utc)
        db_session.add_all(
            [
                RequestLog(
                    endpoint="/api/sign",
                    success=True,
                    response_time_ms=100.0,
                    created_at=now - timedelta(minutes=5),
                ),
                RequestLog(
                    endpoint="/api/sign",
                    success=False,
                    response_time_ms=300.0,
                    error_type="SIGNATURE_GENERATION_ERROR",
                    created_at=now - timedelta(minutes=3),
                ),
            ]
        )
        await db_session.commit()

        response = await client.get("/api/performance", params={"hours": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["requests"]["total"] == 2
        assert data["requests"]["error_rate"] == 50.0
        assert data["response_times"]["average"] == 200.0
        assert data["error_breakdown"] == {"SIGNATURE_GENERATION_ERROR": 1}
        assert len(data["trends"]) == 1

    @pytest.mark.asyncio
    async def test_empty_window(self, client):
        response = await client.get("/api/performance")

        assert response.status_code == 200
        data = response.json()
        assert data["window_hours"] == 24
        assert data["requests"]["total"] == 0
        assert data["trends"] == []
