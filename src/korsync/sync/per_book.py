"""Per-book mode: one container per book plus a rebuilt index."""

from __future__ import annotations

from datetime import datetime
import logging

from korsync.blocks.builder import book_header_properties
from korsync.blocks.models import ContentNode
from korsync.config import SYNC_MODE_PER_PAGE
from korsync.metadata.models import UNTITLED_BOOK, BookMetadata
from korsync.store.base import StoreMutation
from korsync.sync.base import BatchSync
from korsync.sync.pages import (
    BookInfo,
    find_bookmarks_section,
    generate_page_name,
    get_or_create_container,
    rebuild_index,
    sanitize_page_name,
)
from korsync.sync.progress import ProgressNotification
from korsync.sync.reconciler import TreeReconciler

logger = logging.getLogger(__name__)


class PerBookSync(BatchSync):
    mode = SYNC_MODE_PER_PAGE
    progress_label = "Syncing KOReader Books"

    async def _prepare(self) -> None:
        self._books: list[BookInfo] = []

    async def _sync_book(self, metadata: BookMetadata, book: ContentNode) -> list[StoreMutation] | None:
        if not book.children:
            logger.info("No annotation data for %r, skipping page", metadata.title)
            return None

        page_name = sanitize_page_name(generate_page_name(metadata, self._settings)) or UNTITLED_BOOK
        container = await get_or_create_container(
            self._store,
            page_name,
            book_header_properties(metadata, self._render),
        )

        section = await find_bookmarks_section(self._store, container.ref)
        reconciler = TreeReconciler(self._store, self._render)
        mutations = await reconciler.reconcile(container.ref, book.children[0], section)

        self._books.append(
            BookInfo(
                title=metadata.title,
                authors=metadata.authors,
                page_name=container.name,
                container_id=container.id,
                synced_at=datetime.now(),
            )
        )
        return mutations

    def _after_book(
        self,
        metadata: BookMetadata,
        position: int,
        total: int,
        progress: ProgressNotification,
    ) -> None:
        progress.update_message(f"Syncing: {metadata.title} ({position}/{total})")

    async def _finish(self) -> None:
        index = await rebuild_index(self._store, self._books, self._settings)
        logger.info("Rebuilt %s with %d books", index.name, len(self._books))
