"""FastAPI application for the monitoring engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from signwatch import __version__
from signwatch.api.alerts import router as alerts_router
from signwatch.api.health import router as health_router
from signwatch.api.performance import router as performance_router
from signwatch.api.scheduler import router as scheduler_router
from signwatch.api.uptime import router as uptime_router
from signwatch.config import Settings
from signwatch.container import MonitoringContainer, build_container

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def create_app(container: MonitoringContainer | None = None) -> FastAPI:
    """Create the application around a container (built from Settings if None)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        # Startup
        if app.state.container is None:
            settings = Settings()
            configure_logging(settings.log_level)
            app.state.container = build_container(settings)
        await app.state.container.startup()
        yield
        # Shutdown
        await app.state.container.shutdown()

    app = FastAPI(title="signwatch", version=__version__, lifespan=lifespan)
    app.state.container = container

    # Include routers
    app.include_router(health_router)
    app.include_router(performance_router)
    app.include_router(uptime_router)
    app.include_router(alerts_router)
    app.include_router(scheduler_router)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app
