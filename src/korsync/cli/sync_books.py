"""CLI command that runs one sync pass and prints its report."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from korsync.config import SYNC_MODES, SyncSettings
from korsync.errors import StoreOperationError
from korsync.store.settings_repository import SettingsRepository
from korsync.store.sqlite_store import SQLiteDocumentStore
from korsync.sync.base import SyncReport
from korsync.sync.notify import ConsoleNotifier, Notifier
from korsync.sync.runner import run_sync


load_dotenv()

LOGGER = logging.getLogger(__name__)


async def run_sync_pass(
    settings: SyncSettings,
    *,
    source_dir: Path | None = None,
    notifier: Notifier | None = None,
) -> SyncReport:
    """Open the store named by ``settings`` and run one pass against it."""

    notifier = notifier or ConsoleNotifier()
    try:
        store = SQLiteDocumentStore(settings.db_path)
    except StoreOperationError as exc:
        report = SyncReport(mode=settings.sync_mode, fatal="Failed to open document store.")
        notifier.show_error(report.fatal, str(exc))
        return report

    with store, SettingsRepository(settings.db_path) as kv:
        return await run_sync(settings, store, kv, source_dir=source_dir, notifier=notifier)


def exit_code(report: SyncReport) -> int:
    if report.fatal is not None:
        return 2
    return 0 if not report.errors else 1


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Sync KOReader annotations into the document store")
    parser.add_argument("--source-dir", default=None, help="KOReader directory (defaults to the remembered one)")
    parser.add_argument("--db-path", default=None, help="SQLite document store path")
    parser.add_argument("--mode", choices=SYNC_MODES, default=None, help="Sync mode override")
    args = parser.parse_args(argv)

    try:
        settings = SyncSettings.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    if args.db_path:
        settings = replace(settings, db_path=Path(args.db_path))
    if args.mode:
        settings = replace(settings, sync_mode=args.mode)

    source_dir = Path(args.source_dir) if args.source_dir else None
    report = asyncio.run(run_sync_pass(settings, source_dir=source_dir))

    print(json.dumps(report.to_dict(), ensure_ascii=True, indent=2))
    return exit_code(report)


if __name__ == "__main__":
    raise SystemExit(main())
