"""Request log reader: read-only access to served request records."""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signwatch.models.request_log import RequestLog
from signwatch.performance.models import RequestRecord


class RequestLogReader(Protocol):
    """Protocol for the request log collaborator."""

    async def query(self, since: datetime, until: datetime | None = None) -> list[RequestRecord]:
        """Return records with since <= timestamp (< until), oldest first."""
        ...

    async def latest(self, limit: int, until: datetime | None = None) -> list[RequestRecord]:
        """Return the `limit` most recent records (timestamp < until), oldest first."""
        ...


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlRequestLogReader:
    """RequestLogReader over the request_logs table."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def query(self, since: datetime, until: datetime | None = None) -> list[RequestRecord]:
        stmt = select(RequestLog).where(RequestLog.created_at >= since)
        if until is not None:
            stmt = stmt.where(RequestLog.created_at < until)
        stmt = stmt.order_by(RequestLog.created_at.asc(), RequestLog.id.asc())

        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()

        return [_to_record(row) for row in rows]

    async def latest(self, limit: int, until: datetime | None = None) -> list[RequestRecord]:
        stmt = select(RequestLog)
        if until is not None:
            stmt = stmt.where(RequestLog.created_at < until)
        stmt = stmt.order_by(RequestLog.created_at.desc(), RequestLog.id.desc()).limit(limit)

        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()

        return [_to_record(row) for row in reversed(rows)]


def _to_record(row: RequestLog) -> RequestRecord:
    return RequestRecord(
        success=row.success,
        latency_ms=row.response_time_ms or 0.0,
        timestamp=_as_utc(row.created_at),
        error_type=row.error_type or _classify_message(row.error_message),
        endpoint=row.endpoint,
    )


def _classify_message(message: str | None) -> str | None:
    """Derive a label from 'Label: details' style error messages."""
    if not message:
        return None
    return message.split(":", 1)[0].strip() or None


class InMemoryRequestLog:
    """RequestLogReader backed by a list, for tests and local runs."""

    def __init__(self, records: list[RequestRecord] | None = None) -> None:
        self._records = list(records or [])

    def add(self, record: RequestRecord) -> None:
        self._records.append(record)

    async def query(self, since: datetime, until: datetime | None = None) -> list[RequestRecord]:
        selected = [
            r for r in self._records if r.timestamp >= since and (until is None or r.timestamp < until)
        ]
        return sorted(selected, key=lambda r: r.timestamp)

    async def latest(self, limit: int, until: datetime | None = None) -> list[RequestRecord]:
        selected = [r for r in self._records if until is None or r.timestamp < until]
        selected.sort(key=lambda r: r.timestamp)
        return selected[-limit:] if limit > 0 else []
