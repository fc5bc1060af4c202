"""Run the monitoring scheduler headless until SIGTERM/SIGINT.

Usage:
    python -m signwatch
"""

import asyncio
import logging

from signwatch.config import Settings
from signwatch.container import build_container
from signwatch.main import configure_logging

logger = logging.getLogger("signwatch")


async def run(settings: Settings) -> None:
    container = build_container(settings)
    stopped = asyncio.Event()

    await container.startup()
    container.scheduler.install_signal_handlers(on_signal=stopped.set)
    logger.info("Monitoring running, press Ctrl+C to stop")
    try:
        await stopped.wait()
    finally:
        await container.shutdown()


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
