"""FastAPI dependencies resolving services from the app's container."""

from fastapi import Request

from signwatch.alerts.engine import AlertingEngine
from signwatch.container import MonitoringContainer
from signwatch.health.monitor import HealthMonitor
from signwatch.performance.aggregator import PerformanceAggregator
from signwatch.workers.scheduler import MonitoringScheduler


def get_container(request: Request) -> MonitoringContainer:
    return request.app.state.container


def get_health_monitor(request: Request) -> HealthMonitor:
    return get_container(request).health


def get_performance(request: Request) -> PerformanceAggregator:
    return get_container(request).performance


def get_alerting_engine(request: Request) -> AlertingEngine:
    return get_container(request).alerts


def get_scheduler(request: Request) -> MonitoringScheduler:
    return get_container(request).scheduler
