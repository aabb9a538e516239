# src/liquitask/notifications/console_notifier.py

from __future__ import annotations

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    """Notifier that prints notices to stdout (desktop shells plug in their own)."""

    async def notify(self, *, title: str, body: str, tag: str | None = None) -> None:
        logger.info("Notice tag=%s title=%s", tag, title)
        print(f"[{_ts_local()}] [{title}] {body}", flush=True)
