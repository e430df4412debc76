"""User-visible notifications, kept apart from log detail."""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def show_error(self, message: str, details: str | None = None) -> None:
        """Show ``message`` to the user; ``details`` only reach the log."""


class ConsoleNotifier:
    """Write user messages to stderr and details to the log."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def show_error(self, message: str, details: str | None = None) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        print(message, file=stream)
        if details:
            logger.error(details)
