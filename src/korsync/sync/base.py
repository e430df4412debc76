"""Shared batch loop for both sync modes."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Callable

from korsync.blocks.builder import build_book_node
from korsync.blocks.models import ContentNode
from korsync.config import SyncSettings
from korsync.errors import ParseError, StoreOperationError, SyncLookupError
from korsync.metadata.models import BookMetadata
from korsync.metadata.normalizer import parse_metadata
from korsync.source.filesystem import DirectorySource
from korsync.store.base import DocumentStore, StoreMutation
from korsync.sync.notify import Notifier
from korsync.sync.progress import ProgressNotification

logger = logging.getLogger(__name__)

ProgressFactory = Callable[[str, int], ProgressNotification]

PER_FILE_ERRORS = (ParseError, SyncLookupError, StoreOperationError, OSError)


@dataclass(slots=True)
class SyncReport:
    """Outcome of one sync pass."""

    mode: str
    source: str | None = None
    processed: int = 0
    synced: int = 0
    skipped: int = 0
    mutations: list[StoreMutation] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)
    fatal: str | None = None

    @property
    def ok(self) -> bool:
        return self.fatal is None and not self.errors

    def to_dict(self) -> dict[str, object]:
        counts = Counter(mutation.action for mutation in self.mutations)
        return {
            "mode": self.mode,
            "source": self.source,
            "processed": self.processed,
            "synced": self.synced,
            "skipped": self.skipped,
            "mutations": {action: counts.get(action, 0) for action in ("insert", "update", "delete")},
            "errors": list(self.errors),
            "fatal": self.fatal,
        }


class BatchSync:
    """Read, normalize, build and reconcile every metadata file in turn.

    Subclasses implement ``_prepare`` (batch setup, failures abort the run)
    and ``_sync_book`` (one book, failures are recorded and the loop moves on).
    """

    mode = ""
    progress_label = "Syncing KOReader annotations"

    def __init__(
        self,
        store: DocumentStore,
        source: DirectorySource,
        settings: SyncSettings,
        *,
        notifier: Notifier,
        progress_factory: ProgressFactory = ProgressNotification,
    ) -> None:
        self._store = store
        self._source = source
        self._settings = settings
        self._render = settings.render_config()
        self._notifier = notifier
        self._progress_factory = progress_factory

    async def run(self) -> SyncReport:
        files = self._source.metadata_files()
        report = SyncReport(mode=self.mode, source=str(self._source.root))
        await self._prepare()

        progress = self._progress_factory(self.progress_label, len(files))
        try:
            for position, path in enumerate(files, start=1):
                try:
                    await self._sync_file(path, position, len(files), progress, report)
                except PER_FILE_ERRORS as exc:
                    logger.error("Error syncing %s: %s", path.name, exc)
                    report.errors.append({"path": str(path), "error": str(exc)})
                    self._notifier.show_error(f"Sync warning: could not sync {path.name}.", str(exc))
                finally:
                    report.processed += 1
                    progress.increment(1)
            await self._finish()
        finally:
            progress.destruct()
        return report

    async def _sync_file(
        self,
        path: Path,
        position: int,
        total: int,
        progress: ProgressNotification,
        report: SyncReport,
    ) -> None:
        metadata = parse_metadata(self._source.read_text(path))
        for skipped in metadata.skipped:
            logger.debug("%s: dropped entry %d (%s)", path.name, skipped.index, skipped.reason)

        book = build_book_node(metadata, self._render)
        if book is None:
            logger.info("Nothing to import from %s", path.name)
            report.skipped += 1
            return

        mutations = await self._sync_book(metadata, book)
        if mutations is None:
            report.skipped += 1
            return
        report.synced += 1
        report.mutations.extend(mutations)
        self._after_book(metadata, position, total, progress)

    async def _prepare(self) -> None:
        return None

    async def _sync_book(self, metadata: BookMetadata, book: ContentNode) -> list[StoreMutation] | None:
        raise NotImplementedError

    def _after_book(
        self,
        metadata: BookMetadata,
        position: int,
        total: int,
        progress: ProgressNotification,
    ) -> None:
        return None

    async def _finish(self) -> None:
        return None
