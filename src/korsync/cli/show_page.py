"""CLI command that prints a stored page as an indented outline."""

from __future__ import annotations

import argparse
import asyncio

from dotenv import load_dotenv

from korsync.config import SyncSettings
from korsync.store.sqlite_store import SQLiteDocumentStore
from korsync.sync.tree import render_outline


async def _render_page(store: SQLiteDocumentStore, name: str) -> list[str] | None:
    container = await store.get_container(name)
    if container is None:
        return None
    lines = [f"{key}:: {value}" for key, value in container.properties.items()]
    return lines + await render_outline(store, container.ref)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Print a page from the document store")
    parser.add_argument("--page", required=True, help="Page (container) name")
    parser.add_argument("--db-path", default=None, help="SQLite document store path")
    args = parser.parse_args(argv)

    db_path = args.db_path or SyncSettings.from_env().db_path
    with SQLiteDocumentStore(db_path) as store:
        lines = asyncio.run(_render_page(store, args.page))

    if lines is None:
        print(f"Page not found: {args.page}")
        return 1
    print("\n".join(lines))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
