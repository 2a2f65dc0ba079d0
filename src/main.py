import asyncio
import logging
import os
import sys

import uvicorn

from src.api.app import create_app
from src.application.scheduler import SUNDAY, RecurringTask, delay_until_next
from src.application.sync_service import SyncService
from src.config import Settings
from src.domain.exceptions import ConfigError, DatabaseConnectionError
from src.infrastructure.database import Database
from src.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_sync_task(settings: Settings, tasks_database: Database) -> RecurringTask:
    """The GitHub sync job, on its own database connection."""
    sync_service = SyncService(
        database=tasks_database,
        github_token=settings.github_token,
        ca_file=settings.ca_file,
    )

    initial_delay = settings.sync_initial_delay_seconds
    if initial_delay is None:
        initial_delay = delay_until_next(SUNDAY).total_seconds()

    return RecurringTask(
        name="GitHub sync",
        initial_delay=initial_delay,
        interval=settings.sync_interval_seconds,
        task=sync_service.sync_stats,
    )


async def main():
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        configure_logging(os.getenv("LOG_LEVEL", "info"))
        logger.error(str(e))
        sys.exit(1)

    configure_logging(settings.log_level, settings.log_dir)
    logger.debug(f"Loaded config - Host: {settings.host}, Port: {settings.port}")

    # One connection serves requests, a second one is reserved for background tasks.
    try:
        logger.info("Connecting to database (server).")
        server_database = await Database.connect(settings.database_url)
    except DatabaseConnectionError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        logger.info("Connecting to database (tasks).")
        tasks_database = await Database.connect(settings.database_url)
    except DatabaseConnectionError as e:
        logger.error(str(e))
        await server_database.close()
        sys.exit(1)

    sync_task = build_sync_task(settings, tasks_database)
    app = create_app(server_database, scheduler=sync_task)

    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    )
    logger.info(f"Server ready and listening on http://{settings.host}:{settings.port}")

    try:
        await server.serve()
    finally:
        await server_database.close()
        await tasks_database.close()
        logger.info("Shutdown complete.")


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
