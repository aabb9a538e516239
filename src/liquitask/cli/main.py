# src/liquitask/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (store initialization and migrations
included), arms reminders, then runs the console REPL on the event loop.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import console_confirm, run_console_loop
from ..logging_setup import setup_logging
from ..notifications.reminders import ReminderTask

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    state = await create_initial_state(settings=settings, confirm=console_confirm)

    def reminder_tasks() -> list[ReminderTask]:
        return [ReminderTask.from_task(t) for t in state.tasks.tasks]

    state.reminders.schedule_all(reminder_tasks())
    state.reminders.start_periodic_check(reminder_tasks, settings.reminder_interval_seconds)

    try:
        await run_console_loop(state)
    finally:
        await shutdown_state(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "liquitask"))

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")

    logger.info("Bye.")


if __name__ == "__main__":
    main()
