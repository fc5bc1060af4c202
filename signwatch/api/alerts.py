"""Alerts API endpoints for viewing, acknowledging and tuning alerts."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from signwatch.alerts.engine import AlertingEngine
from signwatch.alerts.models import (
    ActiveAlert,
    AlertNotFoundError,
    AlertRule,
    AlertRuleNotFoundError,
    InvalidRuleUpdateError,
)
from signwatch.api.deps import get_alerting_engine, get_scheduler
from signwatch.workers.scheduler import MonitoringScheduler


# Response schemas
class AlertResponse(BaseModel):
    """Response model for a single alert."""

    id: str
    rule_id: str
    message: str
    severity: str
    triggered_at: datetime
    acknowledged: bool
    acknowledged_by: str | None
    acknowledged_at: datetime | None
    metadata: dict[str, Any]


class ConditionResponse(BaseModel):
    type: str
    threshold: float
    time_window_minutes: int
    error_types: list[str]
    endpoints: list[str]


class AlertRuleResponse(BaseModel):
    """Response model for an alert rule."""

    id: str
    name: str
    condition: ConditionResponse
    severity: str
    enabled: bool
    cooldown_minutes: int
    last_triggered_at: datetime | None


class AcknowledgeRequest(BaseModel):
    acknowledged_by: str


class RuleUpdateRequest(BaseModel):
    """Partial rule update; only the fields present are changed."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    severity: str | None = None
    enabled: bool | None = None
    cooldown_minutes: int | None = None
    threshold: float | None = None
    time_window_minutes: int | None = None


class AlertCheckResponse(BaseModel):
    triggered: int
    alerts: list[AlertResponse]


def _alert_response(alert: ActiveAlert) -> AlertResponse:
    return AlertResponse(
        id=alert.id,
        rule_id=alert.rule_id,
        message=alert.message,
        severity=alert.severity.value,
        triggered_at=alert.triggered_at,
        acknowledged=alert.acknowledged,
        acknowledged_by=alert.acknowledged_by,
        acknowledged_at=alert.acknowledged_at,
        metadata=alert.metadata,
    )


def _rule_response(rule: AlertRule) -> AlertRuleResponse:
    return AlertRuleResponse(
        id=rule.id,
        name=rule.name,
        condition=ConditionResponse(**rule.condition.to_dict()),
        severity=rule.severity.value,
        enabled=rule.enabled,
        cooldown_minutes=rule.cooldown_minutes,
        last_triggered_at=rule.last_triggered_at,
    )


# Router
router = APIRouter(prefix="/api/alerts", tags=["alerts"])


@router.get("/active", response_model=list[AlertResponse])
async def list_active_alerts(
    engine: AlertingEngine = Depends(get_alerting_engine),
) -> list[AlertResponse]:
    """List unacknowledged alerts, newest first."""
    return [_alert_response(a) for a in engine.get_active_alerts()]


@router.get("/history", response_model=list[AlertResponse])
async def list_alert_history(
    limit: int = Query(default=50, ge=1, le=500),
    engine: AlertingEngine = Depends(get_alerting_engine),
) -> list[AlertResponse]:
    """List all alerts raised since startup, newest first."""
    return [_alert_response(a) for a in engine.get_alert_history(limit)]


@router.get("/rules", response_model=list[AlertRuleResponse])
async def list_alert_rules(
    engine: AlertingEngine = Depends(get_alerting_engine),
) -> list[AlertRuleResponse]:
    return [_rule_response(r) for r in engine.get_alert_rules()]


@router.post("/check", response_model=AlertCheckResponse)
async def run_alert_check(
    scheduler: MonitoringScheduler = Depends(get_scheduler),
) -> AlertCheckResponse:
    """Evaluate all alert rules now."""
    fired = await scheduler.trigger_alert_check()
    return AlertCheckResponse(triggered=len(fired), alerts=[_alert_response(a) for a in fired])


@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(
    alert_id: str,
    body: AcknowledgeRequest,
    engine: AlertingEngine = Depends(get_alerting_engine),
) -> AlertResponse:
    try:
        alert = await engine.acknowledge_alert(alert_id, body.acknowledged_by)
    except AlertNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return _alert_response(alert)


@router.patch("/rules/{rule_id}", response_model=AlertRuleResponse)
async def update_alert_rule(
    rule_id: str,
    body: RuleUpdateRequest,
    engine: AlertingEngine = Depends(get_alerting_engine),
) -> AlertRuleResponse:
    """Update name, severity, enabled, cooldown, threshold or window of a rule."""
    try:
        rule = await engine.update_alert_rule(rule_id, body.model_dump(exclude_unset=True))
    except AlertRuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidRuleUpdateError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return _rule_response(rule)
