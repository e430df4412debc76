"""Entry point for one sync pass: resolve the source root and dispatch by mode."""

from __future__ import annotations

import logging
from pathlib import Path

from korsync.config import SYNC_MODE_PER_PAGE, SyncSettings
from korsync.errors import SourcePermissionError, StoreOperationError
from korsync.source.filesystem import DirectorySource
from korsync.store.base import DocumentStore
from korsync.store.settings_repository import SettingsRepository
from korsync.sync.base import BatchSync, ProgressFactory, SyncReport
from korsync.sync.notify import Notifier
from korsync.sync.per_book import PerBookSync
from korsync.sync.progress import ProgressNotification
from korsync.sync.single import SinglePageSync

logger = logging.getLogger(__name__)


def resolve_source(
    settings: SyncSettings,
    kv: SettingsRepository,
    source_dir: str | Path | None = None,
) -> Path | None:
    """Pick the explicit directory, falling back to the remembered one."""

    if not settings.remember_directory:
        kv.forget_directory()
    if source_dir is not None:
        return Path(source_dir)
    if settings.remember_directory:
        return kv.get_directory()
    return None


def build_orchestrator(
    settings: SyncSettings,
    store: DocumentStore,
    source: DirectorySource,
    *,
    notifier: Notifier,
    progress_factory: ProgressFactory = ProgressNotification,
) -> BatchSync:
    orchestrator_cls = PerBookSync if settings.sync_mode == SYNC_MODE_PER_PAGE else SinglePageSync
    return orchestrator_cls(
        store,
        source,
        settings,
        notifier=notifier,
        progress_factory=progress_factory,
    )


async def run_sync(
    settings: SyncSettings,
    store: DocumentStore,
    kv: SettingsRepository,
    *,
    source_dir: str | Path | None = None,
    notifier: Notifier,
    progress_factory: ProgressFactory = ProgressNotification,
) -> SyncReport:
    """Run one pass and return its report; batch-level failures set ``fatal``."""

    report = SyncReport(mode=settings.sync_mode)

    root = resolve_source(settings, kv, source_dir)
    if root is None:
        report.fatal = "No KOReader directory selected."
        notifier.show_error(report.fatal, "Pass --source-dir or enable KORSYNC_REMEMBER_DIRECTORY after a first run.")
        return report
    report.source = str(root)

    source = DirectorySource(root)
    try:
        source.verify_permission()
    except SourcePermissionError as exc:
        report.fatal = "Failed to access KOReader directory. Please select it again."
        notifier.show_error(report.fatal, str(exc))
        return report

    if settings.remember_directory and source_dir is not None:
        kv.remember_directory(root.resolve())

    orchestrator = build_orchestrator(
        settings,
        store,
        source,
        notifier=notifier,
        progress_factory=progress_factory,
    )
    try:
        return await orchestrator.run()
    except StoreOperationError as exc:
        report.fatal = "Failed to query existing blocks. Please check your database and try again."
        notifier.show_error(report.fatal, str(exc))
    except OSError as exc:
        report.fatal = "Failed to read KOReader directory."
        notifier.show_error(report.fatal, str(exc))
    logger.error("Sync aborted: %s", report.fatal)
    return report
