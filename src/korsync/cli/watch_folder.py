"""CLI entrypoint that re-syncs whenever KOReader rewrites metadata files."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import logging
from pathlib import Path

from dotenv import load_dotenv

from korsync.automation.watcher import MetadataFolderWatcher
from korsync.cli.sync_books import run_sync_pass
from korsync.config import SYNC_MODES, SyncSettings


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch a KOReader directory and sync on change")
    parser.add_argument("--source-dir", required=True, help="KOReader directory to watch")
    parser.add_argument("--db-path", default=None, help="SQLite document store path")
    parser.add_argument("--mode", choices=SYNC_MODES, default=None, help="Sync mode override")
    parser.add_argument("--debounce", type=float, default=2.0, help="Debounce delay in seconds")
    return parser.parse_args(argv)


async def _run_watcher(args: argparse.Namespace, settings: SyncSettings) -> int:
    source_dir = Path(args.source_dir)
    if not source_dir.exists() or not source_dir.is_dir():
        LOGGER.error("source-dir must exist and be a directory: %s", source_dir)
        return 2

    async def _on_change(paths: list[Path]) -> None:
        LOGGER.info("Detected %d changed metadata files", len(paths))
        report = await run_sync_pass(settings, source_dir=source_dir)
        if report.fatal is not None:
            LOGGER.error("Sync failed: %s", report.fatal)
            return
        LOGGER.info(
            "Synced %d books (%d skipped, %d errors, %d mutations)",
            report.synced,
            report.skipped,
            len(report.errors),
            len(report.mutations),
        )

    watcher = MetadataFolderWatcher(
        source_dir,
        callback=_on_change,
        debounce_seconds=float(args.debounce),
    )

    await watcher.start()
    LOGGER.info("Watching %s (debounce %.1fs)", source_dir, float(args.debounce))

    try:
        while True:
            await asyncio.sleep(1.0)
    finally:
        watcher.stop()
        LOGGER.info("Watcher stopped cleanly")


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)
    try:
        settings = SyncSettings.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2
    if args.db_path:
        settings = replace(settings, db_path=Path(args.db_path))
    if args.mode:
        settings = replace(settings, sync_mode=args.mode)

    try:
        return asyncio.run(_run_watcher(args, settings))
    except KeyboardInterrupt:
        LOGGER.info("Shutdown requested")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
