"""Availability, MTTR and incident reconstruction over uptime history.

All functions here are pure: they take an ordered sequence of
UptimeRecords (oldest first) and never touch the ring buffer itself.

Usage:
    from signwatch.uptime.tracker import calculate_uptime_statistics

    stats = calculate_uptime_statistics(monitor.get_uptime_history(24))
    print(stats.percentage, stats.mean_time_to_recovery)
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from signwatch.health.models import ComponentStatus, UptimeRecord, UptimeSummary

# Number of incidents returned in statistics, newest first
RECENT_INCIDENT_LIMIT = 10


class IncidentSeverity(str, Enum):
    DEGRADED = "degraded"
    CRITICAL = "critical"


@dataclass
class Incident:
    """A maximal contiguous run of non-healthy uptime records.

    Attributes:
        start: Timestamp of the first non-healthy record
        end: Timestamp of the healthy record that closed it, None while open
        duration_minutes: end - start, or now - start for an open incident
        affected_components: Components reported down by any record in the run
        severity: CRITICAL if any record was UNHEALTHY, else DEGRADED
    """

    start: datetime
    end: datetime | None
    duration_minutes: float
    affected_components: list[str] = field(default_factory=list)
    severity: IncidentSeverity = IncidentSeverity.DEGRADED

    @property
    def is_open(self) -> bool:
        return self.end is None


@dataclass(frozen=True)
class ComponentUptime:
    availability: float
    total_checks: int
    up_checks: int
    incidents: int


@dataclass(frozen=True)
class UptimeStatistics:
    percentage: float
    total_checks: int
    up_checks: int
    mean_time_to_recovery: float
    longest_downtime: float
    components: dict[str, ComponentUptime]
    incidents: list[Incident]


def _minutes_between(start: datetime, end: datetime) -> float:
    return max((end - start).total_seconds() / 60.0, 0.0)


def availability_percentage(records: Sequence[UptimeRecord]) -> float:
    """Percentage of records whose overall status was HEALTHY.

    No records means no observed downtime: 100%.
    """
    if not records:
        return 100.0
    up = sum(1 for r in records if r.is_up)
    return up / len(records) * 100


def reconstruct_incidents(
    records: Sequence[UptimeRecord], now: datetime | None = None
) -> list[Incident]:
    """Scan records once and return incidents in chronological order."""
    now = now or datetime.now(tz=timezone.utc)
    incidents: list[Incident] = []

    current: Incident | None = None
    affected: dict[str, None] = {}

    for record in records:
        if not record.is_up:
            if current is None:
                current = Incident(start=record.timestamp, end=None, duration_minutes=0.0)
                affected = {}
            for name, up in record.per_component_up.items():
                if not up:
                    affected[name] = None
            if record.status == ComponentStatus.UNHEALTHY:
                current.severity = IncidentSeverity.CRITICAL
        elif current is not None:
            current.end = record.timestamp
            current.duration_minutes = _minutes_between(current.start, record.timestamp)
            current.affected_components = list(affected)
            incidents.append(current)
            current = None

    if current is not None:
        current.duration_minutes = _minutes_between(current.start, now)
        current.affected_components = list(affected)
        incidents.append(current)

    return incidents


def mean_time_to_recovery(incidents: Sequence[Incident]) -> float:
    """Average duration in minutes of closed incidents, 0 if none closed."""
    closed = [i for i in incidents if not i.is_open]
    if not closed:
        return 0.0
    return sum(i.duration_minutes for i in closed) / len(closed)


def longest_downtime(incidents: Sequence[Incident]) -> float:
    if not incidents:
        return 0.0
    return max(i.duration_minutes for i in incidents)


def component_availability(records: Sequence[UptimeRecord], name: str) -> float:
    """Percentage of records in which `name` was up.

    Every record counts towards the total, so a record that did not
    report the component counts as down. No records means 100%.
    """
    if not records:
        return 100.0
    up = sum(1 for r in records if r.per_component_up.get(name) is True)
    return up / len(records) * 100


def summarize_uptime(records: Sequence[UptimeRecord], now: datetime | None = None) -> UptimeSummary:
    """Condensed form embedded in each HealthCheckResult."""
    incidents = reconstruct_incidents(records, now)
    return UptimeSummary(
        percentage=availability_percentage(records),
        total_checks=len(records),
        successful_checks=sum(1 for r in records if r.is_up),
        downtime_minutes=sum(i.duration_minutes for i in incidents),
        last_downtime=incidents[-1].start if incidents else None,
    )


def calculate_uptime_statistics(
    records: Sequence[UptimeRecord], now: datetime | None = None
) -> UptimeStatistics:
    now = now or datetime.now(tz=timezone.utc)
    incidents = reconstruct_incidents(records, now)

    names: dict[str, None] = {}
    for record in records:
        for name in record.per_component_up:
            names[name] = None

    components: dict[str, ComponentUptime] = {}
    for name in names:
        # Only records that reported this component count here
        reporting = [r for r in records if name in r.per_component_up]
        up = sum(1 for r in reporting if r.per_component_up[name])
        components[name] = ComponentUptime(
            availability=up / len(reporting) * 100 if reporting else 100.0,
            total_checks=len(reporting),
            up_checks=up,
            incidents=sum(1 for i in incidents if name in i.affected_components),
        )

    recent = sorted(incidents, key=lambda i: i.start, reverse=True)[:RECENT_INCIDENT_LIMIT]

    return UptimeStatistics(
        percentage=availability_percentage(records),
        total_checks=len(records),
        up_checks=sum(1 for r in records if r.is_up),
        mean_time_to_recovery=mean_time_to_recovery(incidents),
        longest_downtime=longest_downtime(incidents),
        components=components,
        incidents=recent,
    )
