"""Tests for scheduler control endpoints."""

import pytest


class TestSchedulerEndpoints:
    @pytest.mark.asyncio
    async def test_status_when_stopped(self, client):
        response = await client.get("/api/scheduler/status")

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "stopped"
        assert data["jobs"] == {}

    @pytest.mark.asyncio
    async def test_start_and_stop(self, client):
        response = await client.post("/api/scheduler/start")
        assert response.status_code == 200
        data = response.json()
        assert data["is_running"] is True
        assert set(data["jobs"]) == {"health_check", "alert_check", "quota_check"}

        response = await client.post("/api/scheduler/stop")
        assert response.status_code == 200
        assert response.json()["is_running"] is False

    @pytest.mark.asyncio
    async def test_trigger_health_check(self, client, container):
        response = await client.post("/api/scheduler/trigger/health_check")

        assert response.status_code == 200
        data = response.json()
        assert data["task"] == "health_check"
        assert data["result"]["overall"] == "healthy"
        assert len(container.health.history) == 1

    @pytest.mark.asyncio
    async def test_trigger_alert_and_quota_checks(self, client):
        alert = await client.post("/api/scheduler/trigger/alert_check")
        quota = await client.post("/api/scheduler/trigger/quota_check")

        assert alert.status_code == 200
        assert alert.json()["result"] == []
        assert quota.status_code == 200
        assert quota.json()["result"] == []

    @pytest.mark.asyncio
    async def test_unknown_task_returns_404(self, client):
        response = await client.post("/api/scheduler/trigger/cleanup")
        assert response.status_code == 404
