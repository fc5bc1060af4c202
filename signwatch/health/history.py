"""Fixed-capacity uptime history."""

from collections import deque
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

from signwatch.health.models import UptimeRecord

# 24 hours of history at one check per minute
DEFAULT_CAPACITY = 1440


class UptimeHistory:
    """Ring buffer of UptimeRecords, oldest evicted first.

    Written only by the health monitor; readers get list copies so they
    never observe a buffer that is being appended to.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._records: deque[UptimeRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[UptimeRecord]:
        return iter(list(self._records))

    def append(self, record: UptimeRecord) -> None:
        self._records.append(record)

    def snapshot(self) -> list[UptimeRecord]:
        return list(self._records)

    def window(self, hours: float, now: datetime | None = None) -> list[UptimeRecord]:
        """Records with timestamp inside the last `hours` hours."""
        now = now or datetime.now(tz=timezone.utc)
        cutoff = now - timedelta(hours=hours)
        return [r for r in self._records if r.timestamp >= cutoff]

    def clear(self) -> None:
        self._records.clear()
