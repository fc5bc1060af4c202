"""Alert delivery channels.

This module provides:
- DeliveryResult: Result dataclass for a delivery attempt
- AlertChannel: Abstract base class for pluggable alert sinks
- LogChannel: Writes alerts to the application log
- WebhookChannel: HTTP webhook channel (Slack-compatible payload)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from signwatch.alerts.models import ActiveAlert, Severity

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    """Result of an alert delivery attempt.

    Attributes:
        success: Whether the delivery succeeded
        response_code: HTTP status code (if applicable)
        error_message: Error message if delivery failed
    """

    success: bool
    response_code: int | None = None
    error_message: str | None = None


class AlertChannel(ABC):
    """Abstract base class for alert sinks.

    All channels must implement the send() method.
    """

    name: str = "channel"

    @abstractmethod
    async def send(self, alert: ActiveAlert) -> DeliveryResult:
        """Deliver the given alert.

        Args:
            alert: The alert to deliver

        Returns:
            DeliveryResult indicating success or failure
        """
        pass


class LogChannel(AlertChannel):
    """Log every alert; critical and high severities at ERROR level."""

    name = "log"

    async def send(self, alert: ActiveAlert) -> DeliveryResult:
        level = (
            logging.ERROR
            if alert.severity in (Severity.CRITICAL, Severity.HIGH)
            else logging.WARNING
        )
        logger.log(
            level,
            "ALERT TRIGGERED [%s] %s (rule=%s, alert_id=%s)",
            alert.severity.value,
            alert.message,
            alert.rule_id,
            alert.id,
        )
        return DeliveryResult(success=True)


class WebhookChannel(AlertChannel):
    """HTTP webhook alert channel.

    Sends Slack-compatible JSON payloads via POST request.
    """

    name = "webhook"

    # Emoji mapping for severity levels
    SEVERITY_EMOJI = {
        Severity.CRITICAL: ":fire:",
        Severity.HIGH: ":rotating_light:",
        Severity.MEDIUM: ":warning:",
        Severity.LOW: ":information_source:",
    }

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the webhook channel.

        Args:
            url: Webhook URL
            timeout_seconds: HTTP request timeout (default: 10.0 seconds)
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def build_payload(self, alert: ActiveAlert) -> dict:
        emoji = self.SEVERITY_EMOJI.get(alert.severity, "")
        critical = alert.severity in (Severity.CRITICAL, Severity.HIGH)
        return {
            "text": f"{emoji} [{alert.severity.value.upper()}] {alert.message}",
            "attachments": [
                {
                    "color": "#ff0000" if critical else "#ffcc00",
                    "fields": [
                        {"title": "Rule", "value": alert.rule_id, "short": True},
                        {"title": "Time", "value": alert.triggered_at.isoformat(), "short": True},
                    ],
                }
            ],
        }

    async def send(self, alert: ActiveAlert) -> DeliveryResult:
        """Send a webhook notification.

        Returns:
            DeliveryResult with success=True and HTTP status code on success,
            or success=False with error details on failure
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(self.url, json=self.build_payload(alert))
                response.raise_for_status()
                return DeliveryResult(success=True, response_code=response.status_code)
        except httpx.TimeoutException:
            return DeliveryResult(
                success=False,
                error_message="Request timed out",
            )
        except httpx.HTTPStatusError as e:
            return DeliveryResult(
                success=False,
                response_code=e.response.status_code,
                error_message=str(e),
            )
        except httpx.RequestError as e:
            return DeliveryResult(
                success=False,
                error_message=str(e),
            )
