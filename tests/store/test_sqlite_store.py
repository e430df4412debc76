from __future__ import annotations

from pathlib import Path

import pytest

from korsync.errors import StoreOperationError
from korsync.store.base import CONTAINER, NODE, DocumentStore, NodeRef
from korsync.store.sqlite_store import SQLiteDocumentStore


@pytest.mark.asyncio
async def test_container_lookup_is_case_insensitive(tmp_path: Path) -> None:
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        created = await store.create_container("KOReader Books", {"type": "koreader-index"})
        found = await store.get_container("koreader books")

        assert isinstance(store, DocumentStore)
        assert found is not None
        assert found.id == created.id
        assert found.properties == {"type": "koreader-index"}
        assert await store.get_container("missing") is None


@pytest.mark.asyncio
async def test_insert_appends_children_in_order(tmp_path: Path) -> None:
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        page = await store.create_container("Page")
        first = await store.insert_node(page.ref, "first")
        second = await store.insert_node(page.ref, "second", {"page": 3})
        nested = await store.insert_node(first.ref, "nested")

        top = await store.get_children(page.ref)
        assert [node.text for node in top] == ["first", "second"]
        assert top[1].properties == {"page": 3}
        assert top[0].parent == NodeRef(CONTAINER, page.id)

        children = await store.get_children(first.ref)
        assert [node.id for node in children] == [nested.id]
        assert children[0].parent == NodeRef(NODE, first.id)
        assert second.position == 1


@pytest.mark.asyncio
async def test_update_and_delete_subtree(tmp_path: Path) -> None:
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        page = await store.create_container("Page")
        parent = await store.insert_node(page.ref, "parent")
        child = await store.insert_node(parent.ref, "child")

        await store.update_node(child.id, "changed")
        refreshed = await store.get_node(child.id)
        assert refreshed is not None
        assert refreshed.text == "changed"

        await store.delete_node(parent.id)
        assert await store.get_node(parent.id) is None
        assert await store.get_node(child.id) is None
        assert await store.get_children(page.ref) == []


@pytest.mark.asyncio
async def test_missing_nodes_raise_store_errors(tmp_path: Path) -> None:
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        with pytest.raises(StoreOperationError) as exc_info:
            await store.update_node(999, "nope")
        assert exc_info.value.operation == "update_node"

        with pytest.raises(StoreOperationError):
            await store.delete_node(999)

        with pytest.raises(StoreOperationError):
            await store.insert_node(NodeRef(NODE, 999), "orphan")


@pytest.mark.asyncio
async def test_duplicate_container_name_raises_store_error(tmp_path: Path) -> None:
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await store.create_container("Same")

        with pytest.raises(StoreOperationError):
            await store.create_container("same")


@pytest.mark.asyncio
async def test_query_property_finds_descendants_only(tmp_path: Path) -> None:
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        page = await store.create_container("Sync")
        status = await store.insert_node(page.ref, "status")
        book = await store.insert_node(status.ref, "## Dune", {"authors": "Frank Herbert"})
        no_author = await store.insert_node(status.ref, "## Anon", {"authors": ""})
        await store.insert_node(book.ref, "### Bookmarks", {"collapsed": True})
        await store.insert_node(page.ref, "## Outside", {"authors": "Elsewhere"})

        matches = await store.query_property(status.ref, "authors")

        assert [(match.node.id, match.value) for match in matches] == [
            (book.id, "Frank Herbert"),
            (no_author.id, ""),
        ]

        from_root = await store.query_property(page.ref, "authors")
        assert len(from_root) == 3
