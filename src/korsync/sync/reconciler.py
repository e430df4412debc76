"""Merge a freshly built bookmarks section into its persisted counterpart."""

from __future__ import annotations

import logging

from korsync.blocks.keys import entry_key, is_page_bookmark_text
from korsync.blocks.models import ContentNode
from korsync.config import RenderConfig
from korsync.store.base import DELETE, UPDATE, DocumentStore, NodeRef, StoredNode, StoreMutation
from korsync.sync.tree import insert_tree

logger = logging.getLogger(__name__)


class TreeReconciler:
    """Apply the insert/update/delete steps that bring a section up to date.

    Matched entries keep every property they were stored with; only their
    personal-note child is brought in line with the fresh data. Existing
    children whose key cannot be derived are foreign content and are never
    touched. Store errors propagate to the caller.
    """

    def __init__(self, store: DocumentStore, config: RenderConfig) -> None:
        self._store = store
        self._config = config

    async def reconcile(
        self,
        parent: NodeRef,
        fresh_section: ContentNode,
        existing_section: StoredNode | None = None,
    ) -> list[StoreMutation]:
        mutations: list[StoreMutation] = []

        if existing_section is None:
            await insert_tree(self._store, parent, fresh_section, mutations)
            return mutations

        existing = await self._index_existing(existing_section, mutations)

        for fresh in fresh_section.children:
            key = entry_key(fresh)
            candidates = existing.get(key) if key is not None else None
            if candidates:
                await self._reconcile_note(candidates.pop(0), fresh, mutations)
                continue
            await insert_tree(self._store, existing_section.ref, fresh, mutations)

        for key, stale_entries in existing.items():
            for stale in stale_entries:
                logger.debug("Removing stale entry %r", key)
                await self._delete(stale, mutations)

        return mutations

    async def _index_existing(
        self,
        section: StoredNode,
        mutations: list[StoreMutation],
    ) -> dict[str, list[StoredNode]]:
        indexed: dict[str, list[StoredNode]] = {}
        for child in await self._store.get_children(section.ref):
            if not self._config.sync_page_bookmarks and is_page_bookmark_text(child.text):
                await self._delete(child, mutations)
                continue
            key = entry_key(child)
            if key is None:
                continue
            indexed.setdefault(key, []).append(child)
        return indexed

    async def _reconcile_note(
        self,
        existing: StoredNode,
        fresh: ContentNode,
        mutations: list[StoreMutation],
    ) -> None:
        fresh_note = fresh.children[0] if fresh.children else None
        existing_children = await self._store.get_children(existing.ref)

        if not existing_children:
            if fresh_note is not None:
                await insert_tree(self._store, existing.ref, fresh_note, mutations)
            return

        existing_note = existing_children[0]
        if fresh_note is None:
            await self._delete(existing_note, mutations)
        elif existing_note.text != fresh_note.text:
            await self._store.update_node(existing_note.id, fresh_note.text)
            mutations.append(StoreMutation(UPDATE, existing_note.id, fresh_note.text))

    async def _delete(self, node: StoredNode, mutations: list[StoreMutation]) -> None:
        await self._store.delete_node(node.id)
        mutations.append(StoreMutation(DELETE, node.id, node.text))
