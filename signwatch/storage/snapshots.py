"""Durable snapshot store for health results, alerts and alert rules.

Writes are best-effort from the engine's point of view: callers catch and
log failures instead of letting them fail the operation that produced the
snapshot.

Usage:
    from signwatch.storage.snapshots import SqlSnapshotStore

    store = SqlSnapshotStore(session_factory)
    await store.put("health", "health-1700000000000", result.to_dict())
    latest = await store.list("health", limit=1)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signwatch.models.snapshot import SnapshotRecord

KIND_HEALTH = "health"
KIND_UPTIME = "uptime"
KIND_ALERT = "alert"
KIND_ALERT_RULE = "alert_rule"


class SnapshotStore(Protocol):
    """Protocol for the durable snapshot store collaborator."""

    async def put(self, kind: str, key: str, data: dict[str, Any]) -> None: ...

    async def get(self, kind: str, key: str) -> dict[str, Any] | None: ...

    async def list(self, kind: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Payloads of `kind`, newest first."""
        ...


class SqlSnapshotStore:
    """SnapshotStore over the snapshots table (upsert by kind + key)."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def put(self, kind: str, key: str, data: dict[str, Any]) -> None:
        now = datetime.now(tz=timezone.utc)
        async with self._session_factory() as session:
            existing = await session.get(SnapshotRecord, (kind, key))
            if existing is None:
                session.add(
                    SnapshotRecord(kind=kind, key=key, data=data, created_at=now, updated_at=now)
                )
            else:
                existing.data = data
                existing.updated_at = now
            await session.commit()

    async def get(self, kind: str, key: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            record = await session.get(SnapshotRecord, (kind, key))
            return dict(record.data) if record is not None else None

    async def list(self, kind: str, limit: int | None = None) -> list[dict[str, Any]]:
        stmt = (
            select(SnapshotRecord)
            .where(SnapshotRecord.kind == kind)
            .order_by(SnapshotRecord.created_at.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [dict(row.data) for row in rows]


class InMemorySnapshotStore:
    """SnapshotStore kept in process memory."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def put(self, kind: str, key: str, data: dict[str, Any]) -> None:
        bucket = self._data.setdefault(kind, {})
        # Re-inserting moves the key to the newest position
        bucket.pop(key, None)
        bucket[key] = dict(data)

    async def get(self, kind: str, key: str) -> dict[str, Any] | None:
        data = self._data.get(kind, {}).get(key)
        return dict(data) if data is not None else None

    async def list(self, kind: str, limit: int | None = None) -> list[dict[str, Any]]:
        payloads = [dict(d) for d in reversed(self._data.get(kind, {}).values())]
        return payloads if limit is None else payloads[:limit]
