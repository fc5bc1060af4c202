"""Runtime configuration for the monitoring engine."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SIGNWATCH_", env_file=".env", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./signwatch.db"

    # Probe targets
    app_base_url: str = "http://localhost:3000"
    auth_health_url: str | None = None
    edge_function_url: str | None = None
    signature_path: str = "/api/signature"
    signature_test_room_url: str = "https://www.tiktok.com/@test/live"
    service_token: str | None = None
    api_endpoints: dict[str, str] = Field(
        default_factory=lambda: {
            "api_health": "/api/health",
            "api_eulerstream": "/api/eulerstream",
            "api_sign": "/api/sign",
        }
    )

    # Probe classification
    probe_timeout_seconds: float = 10.0
    healthy_below_ms: float = 500.0
    degraded_below_ms: float = 2000.0

    # Overall status aggregation
    critical_components: tuple[str, ...] = ("database", "signature_generation")
    unhealthy_count_critical: int = 3
    degraded_count_threshold: int = 2

    # Uptime history (24h at one record per minute)
    history_capacity: int = 1440

    # Scheduler
    health_interval_seconds: int = 120
    alert_interval_seconds: int = 300
    quota_interval_seconds: int = 900
    initial_run_delay_seconds: float | None = 5.0

    # Quota
    quota_request_budget: int = 2_000_000

    # Alert delivery
    alert_webhook_url: str | None = None

    # App
    log_level: str = "INFO"
    debug: bool = False
