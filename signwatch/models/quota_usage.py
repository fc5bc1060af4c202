"""QuotaUsage model: daily request counts per user."""

from datetime import date

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from signwatch.db.database import Base


class QuotaUsageRecord(Base):
    __tablename__ = "quota_usage"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    usage_date: Mapped[date] = mapped_column("date", Date, primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tier: Mapped[str] = mapped_column(String(32), default="free")
    request_count: Mapped[int] = mapped_column(Integer, default=0)
    daily_limit: Mapped[int] = mapped_column(Integer)
