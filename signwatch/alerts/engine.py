"""Rule-based alerting engine.

The engine holds the alert rules in memory, evaluates them against live
data on every check and manages the lifecycle of the alerts they raise.

Usage:
    from signwatch.alerts.engine import AlertingEngine

    engine = AlertingEngine(
        request_log=reader,
        quota=quota_monitor,
        health=health_monitor,
        store=snapshot_store,
        channels=[LogChannel()],
    )
    await engine.initialize()
    fired = await engine.check_alerts()

    await engine.acknowledge_alert(fired[0].id, "oncall@example.com")
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timezone
from numbers import Real
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from signwatch.alerts.channels import AlertChannel
from signwatch.alerts.evaluators import EvaluationContext, evaluate, format_alert_message
from signwatch.alerts.models import (
    ActiveAlert,
    AlertNotFoundError,
    AlertRule,
    AlertRuleNotFoundError,
    EvaluationResult,
    InvalidRuleUpdateError,
    Severity,
)
from signwatch.alerts.rules import default_rules
from signwatch.storage.request_log import RequestLogReader
from signwatch.storage.snapshots import KIND_ALERT, KIND_ALERT_RULE, SnapshotStore

if TYPE_CHECKING:
    from signwatch.health.monitor import HealthMonitor
    from signwatch.quota.monitor import QuotaReader

logger = logging.getLogger(__name__)

# Fields an operator may change on an existing rule
UPDATABLE_RULE_FIELDS = frozenset(
    {"name", "severity", "enabled", "cooldown_minutes", "threshold", "time_window_minutes"}
)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class AlertingEngine:
    """Evaluates alert rules and tracks the alerts they raise.

    Features:
    - Disabled rules and rules inside their cooldown are skipped
    - Cooldown runs from the rule's last_triggered_at
    - One failing evaluator is logged and does not block the other rules
    - Persistence and delivery are best-effort: failures are logged only
    """

    def __init__(
        self,
        request_log: RequestLogReader | None = None,
        quota: "QuotaReader | None" = None,
        health: "HealthMonitor | None" = None,
        store: SnapshotStore | None = None,
        channels: Sequence[AlertChannel] = (),
        rules: Sequence[AlertRule] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the engine.

        Args:
            request_log: Reader for request-based conditions
            quota: Reader for the quota_usage condition
            health: Health monitor for service_degradation and uptime_threshold
            store: Snapshot store for alerts and rules (optional)
            channels: Sinks every new alert is handed to
            rules: Initial rules; defaults are used when None
            clock: Returns the current time (UTC)
        """
        self._request_log = request_log
        self._quota = quota
        self._health = health
        self._store = store
        self._channels = list(channels)
        self._seed_rules = list(rules) if rules is not None else None
        self._clock = clock
        self._rules: dict[str, AlertRule] = {}
        self._alerts: dict[str, ActiveAlert] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Seed the rule set; persisted rules override defaults by id."""
        if self._initialized:
            return

        seed = self._seed_rules if self._seed_rules is not None else default_rules()
        rules = {rule.id: rule for rule in seed}

        if self._store is not None:
            try:
                for data in await self._store.list(KIND_ALERT_RULE):
                    rule = AlertRule.from_dict(data)
                    rules[rule.id] = rule
            except Exception as e:
                logger.warning("Failed to load persisted alert rules, using defaults: %s", e)

        self._rules = rules
        self._initialized = True
        logger.info("Alerting engine initialized with %d rules", len(self._rules))

    async def check_alerts(self) -> list[ActiveAlert]:
        """Evaluate every enabled rule outside its cooldown once.

        Returns:
            Alerts created by this check (empty if nothing fired)
        """
        if not self._initialized:
            await self.initialize()

        now = self._clock()
        ctx = EvaluationContext(
            now=now, request_log=self._request_log, quota=self._quota, health=self._health
        )
        fired: list[ActiveAlert] = []

        for rule in list(self._rules.values()):
            if not rule.enabled:
                continue
            if rule.in_cooldown(now):
                logger.debug("Alert rule %s in cooldown until %s", rule.id, rule.cooldown_ends_at())
                continue

            try:
                result = await evaluate(rule.condition, ctx)
            except Exception:
                logger.exception("Failed to evaluate alert rule %s", rule.id)
                continue

            if result.triggered:
                alert = await self._trigger(rule.id, result, now)
                if alert is not None:
                    fired.append(alert)

        return fired

    async def _trigger(
        self, rule_id: str, result: EvaluationResult, now: datetime
    ) -> ActiveAlert | None:
        # Re-read: the rule may have been updated while evaluators awaited
        current = self._rules.get(rule_id)
        if current is None or not current.enabled or current.in_cooldown(now):
            logger.info("Alert rule %s changed during evaluation, not firing", rule_id)
            return None

        rule = replace(current, last_triggered_at=now)
        self._rules[rule_id] = rule

        alert = ActiveAlert(
            id=str(uuid4()),
            rule_id=rule.id,
            message=format_alert_message(rule.name, rule.condition, result),
            severity=rule.severity,
            triggered_at=now,
            metadata={
                "rule_name": rule.name,
                "condition": rule.condition.to_dict(),
                "observed": result.observed,
            },
        )
        self._alerts[alert.id] = alert
        logger.warning("Alert triggered: %s (rule=%s)", alert.message, rule.id)

        await self._save(KIND_ALERT, alert.id, alert.to_dict())
        await self._save(KIND_ALERT_RULE, rule.id, rule.to_dict())
        await self._deliver(alert)
        return alert

    async def _deliver(self, alert: ActiveAlert) -> None:
        for channel in self._channels:
            try:
                outcome = await channel.send(alert)
                if not outcome.success:
                    logger.warning(
                        "Alert delivery via %s failed (alert_id=%s): %s",
                        channel.name,
                        alert.id,
                        outcome.error_message,
                    )
            except Exception:
                logger.exception("Alert channel %s raised (alert_id=%s)", channel.name, alert.id)

    async def _save(self, kind: str, key: str, data: dict[str, Any]) -> None:
        if self._store is None:
            return
        try:
            await self._store.put(kind, key, data)
        except Exception as e:
            logger.error("Failed to store %s %s: %s", kind, key, e)

    def get_active_alerts(self) -> list[ActiveAlert]:
        """Unacknowledged alerts, newest first."""
        active = [a for a in self._alerts.values() if not a.acknowledged]
        return sorted(active, key=lambda a: a.triggered_at, reverse=True)

    def get_alert_history(self, limit: int | None = None) -> list[ActiveAlert]:
        alerts = sorted(self._alerts.values(), key=lambda a: a.triggered_at, reverse=True)
        return alerts if limit is None else alerts[:limit]

    def get_alert(self, alert_id: str) -> ActiveAlert:
        try:
            return self._alerts[alert_id]
        except KeyError:
            raise AlertNotFoundError(f"Alert '{alert_id}' not found") from None

    async def acknowledge_alert(self, alert_id: str, acknowledged_by: str) -> ActiveAlert:
        """Mark an alert acknowledged.

        Acknowledging an already acknowledged alert changes nothing.

        Raises:
            AlertNotFoundError: If no alert has this id
        """
        alert = self.get_alert(alert_id)
        if alert.acknowledged:
            return alert

        alert.acknowledged = True
        alert.acknowledged_by = acknowledged_by
        alert.acknowledged_at = self._clock()
        logger.info("Alert %s acknowledged by %s", alert_id, acknowledged_by)

        await self._save(KIND_ALERT, alert.id, alert.to_dict())
        return alert

    def get_alert_rules(self) -> list[AlertRule]:
        return list(self._rules.values())

    def get_alert_rule(self, rule_id: str) -> AlertRule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise AlertRuleNotFoundError(f"Alert rule '{rule_id}' not found") from None

    async def update_alert_rule(self, rule_id: str, updates: Mapping[str, Any]) -> AlertRule:
        """Merge a partial update into a rule and swap it in.

        Args:
            rule_id: Id of the rule to update
            updates: Any of name, severity, enabled, cooldown_minutes,
                     threshold, time_window_minutes

        Returns:
            The updated rule

        Raises:
            AlertRuleNotFoundError: If no rule has this id
            InvalidRuleUpdateError: If updates names unknown fields or bad values
        """
        rule = self.get_alert_rule(rule_id)

        unknown = set(updates) - UPDATABLE_RULE_FIELDS
        if unknown:
            raise InvalidRuleUpdateError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        rule_changes: dict[str, Any] = {}
        condition_changes: dict[str, Any] = {}

        for key, value in updates.items():
            if key == "name":
                if not isinstance(value, str) or not value.strip():
                    raise InvalidRuleUpdateError("name must be a non-empty string")
                rule_changes["name"] = value
            elif key == "enabled":
                if not isinstance(value, bool):
                    raise InvalidRuleUpdateError("enabled must be a boolean")
                rule_changes["enabled"] = value
            elif key == "severity":
                try:
                    rule_changes["severity"] = Severity(value)
                except ValueError:
                    raise InvalidRuleUpdateError(f"Unknown severity: {value!r}") from None
            elif key == "cooldown_minutes":
                rule_changes["cooldown_minutes"] = _non_negative_int(key, value)
            elif key == "time_window_minutes":
                window = _non_negative_int(key, value)
                if window == 0:
                    raise InvalidRuleUpdateError("time_window_minutes must be positive")
                condition_changes["time_window_minutes"] = window
            elif key == "threshold":
                if isinstance(value, bool) or not isinstance(value, Real):
                    raise InvalidRuleUpdateError("threshold must be a number")
                condition_changes["threshold"] = float(value)

        if condition_changes:
            rule_changes["condition"] = replace(rule.condition, **condition_changes)

        updated = replace(self._rules[rule_id], **rule_changes)
        self._rules[rule_id] = updated
        logger.info("Alert rule %s updated: %s", rule_id, sorted(updates))

        await self._save(KIND_ALERT_RULE, updated.id, updated.to_dict())
        return updated


def _non_negative_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidRuleUpdateError(f"{key} must be a non-negative integer")
    return value
