"""Tests for alerts API endpoints."""

from datetime import datetime, timedelta, timezone

import pytest

from signwatch.models.request_log import RequestLog


async def add_failures(db_session, count: int = 20) -> None:
    now = datetime.now(tz=timezone.utc)
    db_session.add_all(
        [
            RequestLog(
                endpoint="/api/sign",
                success=False,
                response_time_ms=50.0,
                error_type="INTERNAL_SERVER_ERROR",
                created_at=now - timedelta(seconds=30 + i),
            )
            for i in range(count)
        ]
    )
    await db_session.commit()


class TestAlertRules:
    @pytest.mark.asyncio
    async def test_list_rules(self, client, container):
        await container.alerts.initialize()

        response = await client.get("/api/alerts/rules")

        assert response.status_code == 200
        rules = {r["id"]: r for r in response.json()}
        assert len(rules) == 9
        assert rules["high-error-rate"]["condition"]["type"] == "error_rate"
        assert rules["high-error-rate"]["cooldown_minutes"] == 30

    @pytest.mark.asyncio
    async def test_update_rule(self, client, container):
        await container.alerts.initialize()

        response = await client.patch(
            "/api/alerts/rules/high-error-rate", json={"threshold": 0.25, "enabled": False}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["condition"]["threshold"] == 0.25
        assert data["enabled"] is False
        assert container.alerts.get_alert_rule("high-error-rate").enabled is False

    @pytest.mark.asyncio
    async def test_update_unknown_rule_returns_404(self, client, container):
        await container.alerts.initialize()

        response = await client.patch("/api/alerts/rules/nope", json={"enabled": False})

        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{"severity": "urgent"}, {"cooldown_minutes": -5}, {"id": "other"}],
    )
    async def test_invalid_update_returns_422(self, client, container, body):
        await container.alerts.initialize()

        response = await client.patch("/api/alerts/rules/high-error-rate", json=body)

        assert response.status_code == 422


class TestAlertLifecycle:
    @pytest.mark.asyncio
    async def test_check_then_acknowledge(self, client, db_session):
        await add_failures(db_session)

        response = await client.post("/api/alerts/check")
        assert response.status_code == 200
        fired = {a["rule_id"]: a for a in response.json()["alerts"]}
        assert {"high-error-rate", "critical-errors", "consecutive-failures"} <= set(fired)

        active = (await client.get("/api/alerts/active")).json()
        assert len(active) == len(fired)

        alert_id = fired["high-error-rate"]["id"]
        response = await client.post(
            f"/api/alerts/{alert_id}/acknowledge", json={"acknowledged_by": "oncall"}
        )
        assert response.status_code == 200
        assert response.json()["acknowledged_by"] == "oncall"

        active = (await client.get("/api/alerts/active")).json()
        assert alert_id not in {a["id"] for a in active}

        history = (await client.get("/api/alerts/history")).json()
        assert len(history) == len(fired)

    @pytest.mark.asyncio
    async def test_second_check_respects_cooldown(self, client, db_session):
        await add_failures(db_session)

        first = (await client.post("/api/alerts/check")).json()
        second = (await client.post("/api/alerts/check")).json()

        assert first["triggered"] > 0
        assert second["triggered"] == 0

    @pytest.mark.asyncio
    async def test_acknowledge_unknown_returns_404(self, client):
        response = await client.post(
            "/api/alerts/missing/acknowledge", json={"acknowledged_by": "oncall"}
        )
        assert response.status_code == 404
