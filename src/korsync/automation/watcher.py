"""Debounced watcher for KOReader metadata files with asyncio queue bridge."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
import threading
from typing import Awaitable, Callable

from watchdog.events import PatternMatchingEventHandler
from watchdog.observers import Observer


LOGGER = logging.getLogger(__name__)

METADATA_PATTERNS = ["*metadata*.lua"]


class DebouncedMetadataHandler(PatternMatchingEventHandler):
    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[Path],
        debounce_seconds: float = 2.0,
    ) -> None:
        super().__init__(
            patterns=METADATA_PATTERNS,
            ignore_patterns=["*.tmp", "*.old", "*~"],
            ignore_directories=True,
            case_sensitive=False,
        )
        self._loop = loop
        self._queue = queue
        self._debounce_seconds = debounce_seconds
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def _emit_path(self, raw_path: str) -> None:
        with self._lock:
            self._timers.pop(raw_path, None)
        self._loop.call_soon_threadsafe(self._queue.put_nowait, Path(raw_path))

    def _schedule(self, raw_path: str) -> None:
        with self._lock:
            existing = self._timers.pop(raw_path, None)
            if existing is not None:
                existing.cancel()

            timer = threading.Timer(self._debounce_seconds, self._emit_path, args=(raw_path,))
            timer.daemon = True
            self._timers[raw_path] = timer
            timer.start()

    def on_created(self, event) -> None:  # type: ignore[override]
        self._schedule(str(event.src_path))

    def on_modified(self, event) -> None:  # type: ignore[override]
        self._schedule(str(event.src_path))

    def close(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()


class MetadataFolderWatcher:
    """Run ``callback`` with the changed metadata files, one batch at a time.

    Paths that arrive while a callback is running are coalesced into the
    next call, so a burst of KOReader writes costs a single sync pass.
    """

    def __init__(
        self,
        root: str | Path,
        callback: Callable[[list[Path]], Awaitable[None]],
        debounce_seconds: float = 2.0,
    ) -> None:
        self._root = Path(root)
        self._callback = callback
        self._debounce_seconds = debounce_seconds
        self._queue: asyncio.Queue[Path] | None = None
        self._handler: DebouncedMetadataHandler | None = None
        self._observer: Observer | None = None
        self._consumer_task: asyncio.Task[None] | None = None

    async def _next_batch(self) -> list[Path]:
        assert self._queue is not None
        paths = [await self._queue.get()]
        while not self._queue.empty():
            paths.append(self._queue.get_nowait())
        return paths

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            batch = await self._next_batch()
            try:
                await self._callback(list(dict.fromkeys(batch)))
            except Exception:  # pragma: no cover
                LOGGER.exception("Watcher callback failed for %d paths", len(batch))
            finally:
                for _ in batch:
                    self._queue.task_done()

    async def start(self) -> None:
        if self._observer is not None:
            return
        if not self._root.exists() or not self._root.is_dir():
            raise ValueError(f"Watch directory does not exist or is not a directory: {self._root}")

        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._handler = DebouncedMetadataHandler(
            loop=loop,
            queue=self._queue,
            debounce_seconds=self._debounce_seconds,
        )

        observer = Observer()
        observer.schedule(self._handler, str(self._root), recursive=True)
        observer.start()
        self._observer = observer
        self._consumer_task = asyncio.create_task(self._consume())

    def stop(self) -> None:
        observer = self._observer
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
            self._observer = None

        if self._handler is not None:
            self._handler.close()
            self._handler = None

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            self._consumer_task = None
