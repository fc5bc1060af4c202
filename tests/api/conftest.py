from datetime import datetime, timezone

import httpx
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from signwatch.config import Settings
from signwatch.container import build_container
from signwatch.health.models import ComponentStatus, ServiceComponent
from signwatch.main import create_app


class StubChecker:
    """Checker returning a fixed, switchable status."""

    def __init__(self, name: str, status: ComponentStatus = ComponentStatus.HEALTHY) -> None:
        self.name = name
        self.status = status

    async def check(self) -> ServiceComponent:
        return ServiceComponent(
            name=self.name,
            status=self.status,
            response_time_ms=15.0,
            last_checked_at=datetime.now(tz=timezone.utc),
        )


@pytest_asyncio.fixture
async def checkers():
    return {
        name: StubChecker(name)
        for name in ("database", "authentication", "signature_generation", "api_health")
    }


@pytest_asyncio.fixture
async def container(session_factory, checkers):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    container = build_container(
        Settings(initial_run_delay_seconds=None),
        session_factory=session_factory,
        checkers=list(checkers.values()),
        http_client=http_client,
        channels=[],
        start_scheduler=False,
    )
    yield container
    await container.shutdown()


@pytest_asyncio.fixture
async def client(container):
    """HTTP client against an app wired to the test container."""
    app = create_app(container)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
