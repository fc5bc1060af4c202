"""Quota monitoring: per-user daily quota alerts and platform utilization."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signwatch.health.models import QuotaStatus, QuotaSummary
from signwatch.models.quota_usage import QuotaUsageRecord

logger = logging.getLogger(__name__)

# Percent of the daily limit at which a user is warned
APPROACHING_LIMIT_PERCENT = 90.0
QUOTA_WARNING_PERCENT = 75.0
QUOTA_CRITICAL_PERCENT = 90.0


class QuotaAlertType(str, Enum):
    APPROACHING_LIMIT = "approaching_limit"
    LIMIT_EXCEEDED = "limit_exceeded"


@dataclass(frozen=True)
class QuotaUsage:
    user_id: str
    request_count: int
    daily_limit: int
    email: str | None = None

    @property
    def usage_percentage(self) -> float:
        if self.daily_limit <= 0:
            return 0.0
        return self.request_count / self.daily_limit * 100

    @property
    def remaining(self) -> int:
        return max(self.daily_limit - self.request_count, 0)


@dataclass(frozen=True)
class QuotaAlert:
    user_id: str
    type: QuotaAlertType
    severity: str
    message: str
    timestamp: datetime
    data: dict[str, Any] = field(default_factory=dict)


class QuotaUsageSource(Protocol):
    """Today's quota usage for free-tier users."""

    async def get_daily_usage(self) -> list[QuotaUsage]: ...


class QuotaReader(Protocol):
    """Protocol consumed by the quota_usage alert condition."""

    async def current_utilization(self) -> float:
        """Platform quota utilization as a fraction in [0, 1]."""
        ...


class SqlQuotaUsageSource:
    """QuotaUsageSource over the quota_usage table."""

    def __init__(self, session_factory: Callable[[], AsyncSession], tier: str = "free") -> None:
        self._session_factory = session_factory
        self._tier = tier

    async def get_daily_usage(self, day: date | None = None) -> list[QuotaUsage]:
        day = day or datetime.now(tz=timezone.utc).date()
        stmt = select(QuotaUsageRecord).where(
            QuotaUsageRecord.usage_date == day, QuotaUsageRecord.tier == self._tier
        )
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [
            QuotaUsage(
                user_id=row.user_id,
                request_count=row.request_count,
                daily_limit=row.daily_limit,
                email=row.email,
            )
            for row in rows
        ]


def _next_month_start(now: datetime) -> datetime:
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


class QuotaMonitor:
    """Watches daily per-user quotas and overall request budget.

    Attributes:
        request_budget: Platform-wide request allowance used for utilization
    """

    def __init__(self, usage_source: QuotaUsageSource, request_budget: int = 2_000_000) -> None:
        if request_budget <= 0:
            raise ValueError(f"request_budget must be positive, got {request_budget}")
        self._source = usage_source
        self.request_budget = request_budget

    async def total_requests(self) -> int:
        usage = await self._source.get_daily_usage()
        return sum(u.request_count for u in usage)

    async def current_utilization(self) -> float:
        used = await self.total_requests()
        return min(max(used / self.request_budget, 0.0), 1.0)

    async def get_quota_summary(self) -> QuotaSummary:
        used = await self.total_requests()
        percentage = used / self.request_budget * 100
        if percentage > QUOTA_CRITICAL_PERCENT:
            status = QuotaStatus.CRITICAL
        elif percentage > QUOTA_WARNING_PERCENT:
            status = QuotaStatus.WARNING
        else:
            status = QuotaStatus.HEALTHY
        return QuotaSummary(
            used=used,
            limit=self.request_budget,
            percentage=percentage,
            status=status,
            reset_date=_next_month_start(datetime.now(tz=timezone.utc)),
        )

    async def check_quota_alerts(self) -> list[QuotaAlert]:
        """Build alerts for users at or above 90% of their daily limit."""
        alerts: list[QuotaAlert] = []
        now = datetime.now(tz=timezone.utc)

        for usage in await self._source.get_daily_usage():
            percentage = usage.usage_percentage
            who = usage.email or usage.user_id
            data = {
                "email": usage.email,
                "usage_percentage": percentage,
                "request_count": usage.request_count,
                "daily_limit": usage.daily_limit,
                "remaining": usage.remaining,
            }

            if percentage >= 100:
                alerts.append(
                    QuotaAlert(
                        user_id=usage.user_id,
                        type=QuotaAlertType.LIMIT_EXCEEDED,
                        severity="critical",
                        message=(
                            f"User {who} has exceeded daily quota "
                            f"({usage.request_count}/{usage.daily_limit})"
                        ),
                        timestamp=now,
                        data=data,
                    )
                )
            elif percentage >= APPROACHING_LIMIT_PERCENT:
                alerts.append(
                    QuotaAlert(
                        user_id=usage.user_id,
                        type=QuotaAlertType.APPROACHING_LIMIT,
                        severity="high",
                        message=(
                            f"User {who} has used {percentage:.1f}% of daily quota "
                            f"({usage.request_count}/{usage.daily_limit})"
                        ),
                        timestamp=now,
                        data=data,
                    )
                )

        return alerts
