"""Default alert rules seeded at engine start."""

from signwatch.alerts.models import AlertCondition, AlertRule, ConditionType, Severity

# Error labels written by the API layer's error handler
INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
SIGNATURE_GENERATION_ERROR = "SIGNATURE_GENERATION_ERROR"
DATABASE_ERROR = "DATABASE_ERROR"


def default_rules() -> list[AlertRule]:
    return [
        AlertRule(
            id="high-error-rate",
            name="High Error Rate",
            condition=AlertCondition(ConditionType.ERROR_RATE, threshold=0.1, time_window_minutes=15),
            severity=Severity.HIGH,
            cooldown_minutes=30,
        ),
        AlertRule(
            id="critical-errors",
            name="Critical Errors",
            condition=AlertCondition(
                ConditionType.ERROR_COUNT,
                threshold=1,
                time_window_minutes=5,
                error_types=(INTERNAL_SERVER_ERROR,),
            ),
            severity=Severity.CRITICAL,
            cooldown_minutes=15,
        ),
        AlertRule(
            id="signature-failures",
            name="Signature Generation Failures",
            condition=AlertCondition(
                ConditionType.ERROR_COUNT,
                threshold=5,
                time_window_minutes=10,
                error_types=(SIGNATURE_GENERATION_ERROR,),
            ),
            severity=Severity.HIGH,
            cooldown_minutes=20,
        ),
        AlertRule(
            id="database-errors",
            name="Database Connection Issues",
            condition=AlertCondition(
                ConditionType.ERROR_COUNT,
                threshold=3,
                time_window_minutes=5,
                error_types=(DATABASE_ERROR,),
            ),
            severity=Severity.CRITICAL,
            cooldown_minutes=10,
        ),
        AlertRule(
            id="consecutive-failures",
            name="Consecutive API Failures",
            condition=AlertCondition(
                ConditionType.CONSECUTIVE_FAILURES, threshold=10, time_window_minutes=5
            ),
            severity=Severity.HIGH,
            cooldown_minutes=15,
        ),
        AlertRule(
            id="slow-response-time",
            name="Slow Response Times",
            condition=AlertCondition(
                ConditionType.RESPONSE_TIME, threshold=5000, time_window_minutes=10
            ),
            severity=Severity.MEDIUM,
            cooldown_minutes=30,
        ),
        AlertRule(
            id="quota-usage",
            name="Request Quota Nearly Exhausted",
            condition=AlertCondition(ConditionType.QUOTA_USAGE, threshold=0.9, time_window_minutes=15),
            severity=Severity.HIGH,
            cooldown_minutes=60,
        ),
        AlertRule(
            id="service-degradation",
            name="Service Degradation",
            condition=AlertCondition(
                ConditionType.SERVICE_DEGRADATION, threshold=0.5, time_window_minutes=5
            ),
            severity=Severity.CRITICAL,
            cooldown_minutes=15,
        ),
        AlertRule(
            id="low-uptime",
            name="Uptime Below Target",
            condition=AlertCondition(
                ConditionType.UPTIME_THRESHOLD, threshold=99.0, time_window_minutes=60
            ),
            severity=Severity.HIGH,
            cooldown_minutes=60,
        ),
    ]
