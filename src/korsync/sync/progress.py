"""Progress reporting for sync batches."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class ProgressNotification:
    """Fire-and-forget progress surface backed by the module logger."""

    def __init__(self, message: str, total: int) -> None:
        self.message = message
        self.total = total
        self.current = 0
        logger.info("%s (0/%d)", message, total)

    def increment(self, by: int = 1) -> None:
        self.current = min(self.current + by, self.total)
        logger.debug("%s (%d/%d)", self.message, self.current, self.total)

    def update_message(self, message: str) -> None:
        self.message = message
        logger.info(message)

    def destruct(self) -> None:
        logger.info("Finished: %d/%d files", self.current, self.total)
