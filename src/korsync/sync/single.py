"""Single-container mode: every book lives under one sync page."""

from __future__ import annotations

from datetime import datetime
import logging

from korsync.blocks.keys import book_key, stored_book_key
from korsync.blocks.models import ContentNode
from korsync.config import SYNC_MODE_SINGLE_PAGE
from korsync.errors import SyncLookupError
from korsync.metadata.models import BookMetadata
from korsync.store.base import StoredNode, StoreMutation
from korsync.sync.base import BatchSync
from korsync.sync.pages import find_bookmarks_section, get_or_create_container
from korsync.sync.reconciler import TreeReconciler
from korsync.sync.tree import insert_tree

logger = logging.getLogger(__name__)

STATUS_MARKER = "LKRS"
WARNING_MARKER = "BEGIN_WARNING"
WARNING_TEXT = (
    "\n#+BEGIN_WARNING\n"
    "Please do not edit this page; stick to block references made elsewhere.\n"
    "#+END_WARNING"
)
STATUS_PROCESSING = "# ⚙ LKRS: Processing KOReader Annotations ..."
STATUS_DONE = "# 📚 LKRS: KOReader - Sync Initiated at {time}"


class SinglePageSync(BatchSync):
    """Keep all books as top-level sections under the status node."""

    mode = SYNC_MODE_SINGLE_PAGE
    progress_label = "Syncing KOReader Annotations:"

    _status: StoredNode
    _books: dict[str, StoredNode]

    async def _prepare(self) -> None:
        self._started_at = datetime.now()
        container = await get_or_create_container(self._store, self._settings.sync_page_name)

        status: StoredNode | None = None
        has_warning = False
        for child in await self._store.get_children(container.ref):
            if STATUS_MARKER in child.text:
                status = status or child
            elif WARNING_MARKER in child.text:
                has_warning = True

        if not has_warning:
            await self._store.insert_node(container.ref, WARNING_TEXT)
        if status is None:
            status = await self._store.insert_node(container.ref, STATUS_PROCESSING)
        else:
            await self._store.update_node(status.id, STATUS_PROCESSING)
        self._status = status

        self._books = {}
        for match in await self._store.query_property(status.ref, "authors"):
            key = stored_book_key(match.node.text, match.value)
            if key is not None and key not in self._books:
                self._books[key] = match.node
        logger.info("Found %d previously synced books", len(self._books))

    async def _sync_book(self, metadata: BookMetadata, book: ContentNode) -> list[StoreMutation] | None:
        key = book_key(metadata)
        mutations: list[StoreMutation] = []

        existing = self._books.get(key)
        if existing is None:
            self._books[key] = await insert_tree(self._store, self._status.ref, book, mutations)
            return mutations

        if await self._store.get_node(existing.id) is None:
            raise SyncLookupError(f"Previously synced book {metadata.title!r} (node {existing.id}) was not found")

        if not book.children:
            return mutations

        section = await find_bookmarks_section(self._store, existing.ref)
        if section is None:
            raise SyncLookupError(
                f"No bookmarks section found for {metadata.title!r} (node {existing.id}); "
                "the book may have been edited manually"
            )

        reconciler = TreeReconciler(self._store, self._render)
        return await reconciler.reconcile(existing.ref, book.children[0], section)

    async def _finish(self) -> None:
        done = STATUS_DONE.format(time=self._started_at.strftime("%Y-%m-%d %H:%M:%S"))
        await self._store.update_node(self._status.id, done)
