"""Alert rule and alert models."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """How urgent an alert is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ConditionType(str, Enum):
    """Closed set of alert condition kinds; each has exactly one evaluator."""

    ERROR_RATE = "error_rate"
    ERROR_COUNT = "error_count"
    CONSECUTIVE_FAILURES = "consecutive_failures"
    RESPONSE_TIME = "response_time"
    QUOTA_USAGE = "quota_usage"
    SERVICE_DEGRADATION = "service_degradation"
    UPTIME_THRESHOLD = "uptime_threshold"


class AlertNotFoundError(LookupError):
    """Raised when acknowledging an alert id that does not exist."""


class AlertRuleNotFoundError(LookupError):
    """Raised when updating an alert rule id that does not exist."""


class InvalidRuleUpdateError(ValueError):
    """Raised when a rule update names unknown fields or carries bad values."""


@dataclass(frozen=True)
class AlertCondition:
    """What a rule watches.

    Attributes:
        type: Condition kind, selects the evaluator
        threshold: Value the observation is compared against
        time_window_minutes: Size of the sliding window looked at
        error_types: error_count only, restrict to these error labels
        endpoints: error_count only, restrict to these endpoints
    """

    type: ConditionType
    threshold: float
    time_window_minutes: int
    error_types: tuple[str, ...] = ()
    endpoints: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "threshold": self.threshold,
            "time_window_minutes": self.time_window_minutes,
            "error_types": list(self.error_types),
            "endpoints": list(self.endpoints),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AlertCondition":
        return cls(
            type=ConditionType(data["type"]),
            threshold=float(data["threshold"]),
            time_window_minutes=int(data["time_window_minutes"]),
            error_types=tuple(data.get("error_types") or ()),
            endpoints=tuple(data.get("endpoints") or ()),
        )


@dataclass(frozen=True)
class AlertRule:
    """A rule evaluated on every alert check.

    Rules are replaced, never mutated: the engine swaps in a new instance
    when a rule fires or is updated, so readers always see a consistent rule.
    """

    id: str
    name: str
    condition: AlertCondition
    severity: Severity
    enabled: bool = True
    cooldown_minutes: int = 30
    last_triggered_at: datetime | None = None

    def cooldown_ends_at(self) -> datetime | None:
        if self.last_triggered_at is None:
            return None
        return self.last_triggered_at + timedelta(minutes=self.cooldown_minutes)

    def in_cooldown(self, now: datetime) -> bool:
        ends_at = self.cooldown_ends_at()
        return ends_at is not None and now < ends_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "condition": self.condition.to_dict(),
            "severity": self.severity.value,
            "enabled": self.enabled,
            "cooldown_minutes": self.cooldown_minutes,
            "last_triggered_at": (
                self.last_triggered_at.isoformat() if self.last_triggered_at else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AlertRule":
        last = data.get("last_triggered_at")
        return cls(
            id=data["id"],
            name=data["name"],
            condition=AlertCondition.from_dict(data["condition"]),
            severity=Severity(data["severity"]),
            enabled=bool(data.get("enabled", True)),
            cooldown_minutes=int(data.get("cooldown_minutes", 30)),
            last_triggered_at=datetime.fromisoformat(last) if last else None,
        )


@dataclass
class ActiveAlert:
    """An alert raised by a rule.

    Only the acknowledgement fields ever change after creation.
    """

    id: str
    rule_id: str
    message: str
    severity: Severity
    triggered_at: datetime
    acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "message": self.message,
            "severity": self.severity.value,
            "triggered_at": self.triggered_at.isoformat(),
            "acknowledged": self.acknowledged,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": self.acknowledged_at.isoformat() if self.acknowledged_at else None,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of evaluating one condition.

    Attributes:
        triggered: Whether the rule should fire
        observed: The measured value compared against the threshold
        detail: Extra context for the alert message (e.g. sample size)
    """

    triggered: bool
    observed: float | None = None
    detail: str | None = None
