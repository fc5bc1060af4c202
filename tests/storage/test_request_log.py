"""Tests for the SQL request log reader."""

from datetime import datetime, timedelta, timezone

import pytest

from signwatch.models.request_log import RequestLog
from signwatch.performance.models import RequestRecord
from signwatch.storage.request_log import InMemoryRequestLog, SqlRequestLogReader

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class TestSqlRequestLogReader:
    @pytest.mark.asyncio
    async def test_query_window_oldest_first(self, session_factory, db_session):
        db_session.add_all(
            [
                RequestLog(
                    endpoint="/api/sign",
                    success=True,
                    response_time_ms=120.0,
                    created_at=NOW - timedelta(minutes=5),
                ),
                RequestLog(
                    endpoint="/api/sign",
                    success=False,
                    response_time_ms=None,
                    error_type="SIGNATURE_GENERATION_ERROR",
                    created_at=NOW - timedelta(minutes=10),
                ),
                RequestLog(
                    endpoint="/api/sign",
                    success=True,
                    response_time_ms=80.0,
                    created_at=NOW - timedelta(hours=3),
                ),
            ]
        )
        await db_session.commit()

        records = await SqlRequestLogReader(session_factory).query(NOW - timedelta(hours=1), NOW)

        assert len(records) == 2
        assert records[0].success is False
        assert records[0].latency_ms == 0.0
        assert records[0].error_type == "SIGNATURE_GENERATION_ERROR"
        assert records[1].latency_ms == 120.0
        assert records[1].timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_error_type_from_message(self, session_factory, db_session):
        db_session.add(
            RequestLog(
                success=False,
                error_message="DATABASE_ERROR: connection reset",
                created_at=NOW - timedelta(minutes=1),
            )
        )
        await db_session.commit()

        records = await SqlRequestLogReader(session_factory).query(NOW - timedelta(minutes=5))

        assert records[0].error_type == "DATABASE_ERROR"

    @pytest.mark.asyncio
    async def test_latest_ignores_age(self, session_factory, db_session):
        db_session.add_all(
            [
                RequestLog(success=i % 2 == 0, created_at=NOW - timedelta(hours=6, minutes=i))
                for i in range(5)
            ]
            + [RequestLog(success=True, created_at=NOW + timedelta(minutes=1))]
        )
        await db_session.commit()

        records = await SqlRequestLogReader(session_factory).latest(3, until=NOW)

        assert [r.timestamp for r in records] == [
            NOW - timedelta(hours=6, minutes=2),
            NOW - timedelta(hours=6, minutes=1),
            NOW - timedelta(hours=6),
        ]
        assert [r.success for r in records] == [True, False, True]


class TestInMemoryRequestLog:
    @pytest.mark.asyncio
    async def test_latest_oldest_first(self):
        log = InMemoryRequestLog(
            [
                RequestRecord(success=True, latency_ms=1.0, timestamp=NOW - timedelta(minutes=m))
                for m in (30, 10, 20)
            ]
        )

        records = await log.latest(2, until=NOW)

        assert [r.timestamp for r in records] == [
            NOW - timedelta(minutes=20),
            NOW - timedelta(minutes=10),
        ]
        assert await log.latest(0) == []
