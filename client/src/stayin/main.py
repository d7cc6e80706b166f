"""Headless entry point: boot the runtime, wait for readiness, report the route."""

import asyncio
import logging

from stayin import __version__
from stayin.config import Settings, get_settings
from stayin.runtime import AppRuntime

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def run(settings: Settings) -> str | None:
    """Start the app, wait until the splash would lift, and return the current route."""
    runtime = await AppRuntime.from_settings(settings)
    async with runtime:
        await runtime.readiness.wait_ready()
        snapshot = runtime.session.snapshot
        logger.info(
            f"Ready: state={snapshot.state.value} "
            f"role={snapshot.role.value if snapshot.role else None} "
            f"route={runtime.navigator.current}"
        )
        for notice in runtime.notices.history:
            logger.warning(f"Notice: {notice.message}")
        return runtime.navigator.current


def main() -> None:
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info(f"StayIN {__version__}")
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
