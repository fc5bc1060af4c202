"""Alerting package.

This package provides the rule-based alerting engine:
- Alert rule, condition and alert models
- Default rule set
- One condition evaluator per ConditionType
- Pluggable delivery channels (log, webhook)
- AlertingEngine as the main entry point
"""

from signwatch.alerts.channels import AlertChannel, DeliveryResult, LogChannel, WebhookChannel
from signwatch.alerts.engine import UPDATABLE_RULE_FIELDS, AlertingEngine
from signwatch.alerts.evaluators import EVALUATORS, EvaluationContext, format_alert_message
from signwatch.alerts.models import (
    ActiveAlert,
    AlertCondition,
    AlertNotFoundError,
    AlertRule,
    AlertRuleNotFoundError,
    ConditionType,
    EvaluationResult,
    InvalidRuleUpdateError,
    Severity,
)
from signwatch.alerts.rules import default_rules

__all__ = [
    # Models
    "ActiveAlert",
    "AlertCondition",
    "AlertRule",
    "ConditionType",
    "EvaluationResult",
    "Severity",
    # Errors
    "AlertNotFoundError",
    "AlertRuleNotFoundError",
    "InvalidRuleUpdateError",
    # Rules and evaluation
    "EVALUATORS",
    "EvaluationContext",
    "default_rules",
    "format_alert_message",
    # Channels
    "AlertChannel",
    "DeliveryResult",
    "LogChannel",
    "WebhookChannel",
    # Engine
    "UPDATABLE_RULE_FIELDS",
    "AlertingEngine",
]
