from __future__ import annotations

from pathlib import Path

import pytest

from korsync.blocks.builder import build_bookmarks_section
from korsync.config import RenderConfig
from korsync.metadata.models import AnnotationEntry
from korsync.store.base import DELETE, INSERT, UPDATE
from korsync.store.sqlite_store import SQLiteDocumentStore
from korsync.sync.pages import find_bookmarks_section
from korsync.sync.reconciler import TreeReconciler


def _highlight(text: str, note: str | None = None) -> AnnotationEntry:
    return AnnotationEntry(display_text=text, personal_note=note, timestamp="2024-01-01 00:00:00", page_label=1)


def _page_mark() -> AnnotationEntry:
    return AnnotationEntry(is_page_bookmark=True, page_label=9, timestamp="2024-01-02 00:00:00")


async def _sync(store: SQLiteDocumentStore, page_name: str, entries: list[AnnotationEntry], config: RenderConfig):
    page = await store.get_container(page_name) or await store.create_container(page_name)
    section = await find_bookmarks_section(store, page.ref)
    fresh = build_bookmarks_section(entries, config)
    return await TreeReconciler(store, config).reconcile(page.ref, fresh, section)


async def _entries(store: SQLiteDocumentStore, page_name: str) -> list[tuple[str, list[str]]]:
    page = await store.get_container(page_name)
    assert page is not None
    section = await find_bookmarks_section(store, page.ref)
    assert section is not None
    result = []
    for entry in await store.get_children(section.ref):
        notes = [child.text for child in await store.get_children(entry.ref)]
        result.append((entry.text, notes))
    return result


@pytest.mark.asyncio
async def test_first_run_inserts_section_entry_and_note_then_is_idempotent(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        first = await _sync(store, "Book", [_highlight("Hello", "nice")], config)
        second = await _sync(store, "Book", [_highlight("Hello", "nice")], config)

        assert [mutation.action for mutation in first] == [INSERT, INSERT, INSERT]
        assert [mutation.text for mutation in first] == ["### Bookmarks", "> Hello", "nice"]
        assert second == []
        assert await _entries(store, "Book") == [("> Hello", ["nice"])]


@pytest.mark.asyncio
async def test_removed_note_is_deleted_and_entry_kept(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("Hello", "nice")], config)
        mutations = await _sync(store, "Book", [_highlight("Hello")], config)

        assert [(mutation.action, mutation.text) for mutation in mutations] == [(DELETE, "nice")]
        assert await _entries(store, "Book") == [("> Hello", [])]


@pytest.mark.asyncio
async def test_changed_note_is_updated_in_place(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("Hello", "nice")], config)
        mutations = await _sync(store, "Book", [_highlight("Hello", "even nicer")], config)

        assert [(mutation.action, mutation.text) for mutation in mutations] == [(UPDATE, "even nicer")]
        assert await _entries(store, "Book") == [("> Hello", ["even nicer"])]


@pytest.mark.asyncio
async def test_new_note_is_inserted_under_existing_entry(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("Hello")], config)
        mutations = await _sync(store, "Book", [_highlight("Hello", "added later")], config)

        assert [(mutation.action, mutation.text) for mutation in mutations] == [(INSERT, "added later")]
        assert await _entries(store, "Book") == [("> Hello", ["added later"])]


@pytest.mark.asyncio
async def test_dropped_entry_is_deleted_and_survivor_untouched(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("keep"), _highlight("drop", "gone")], config)
        mutations = await _sync(store, "Book", [_highlight("keep")], config)

        assert [(mutation.action, mutation.text) for mutation in mutations] == [(DELETE, "> drop")]
        assert await _entries(store, "Book") == [("> keep", [])]


@pytest.mark.asyncio
async def test_new_entries_are_appended_after_existing(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("second")], config)
        mutations = await _sync(store, "Book", [_highlight("first"), _highlight("second")], config)

        assert [(mutation.action, mutation.text) for mutation in mutations] == [(INSERT, "> first")]
        assert [text for text, _ in await _entries(store, "Book")] == ["> second", "> first"]


@pytest.mark.asyncio
async def test_dash_text_matches_across_runs(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("A - B", "x-y")], config)
        mutations = await _sync(store, "Book", [_highlight("A - B", "x-y")], config)

        assert mutations == []
        assert await _entries(store, "Book") == [("> A \\- B", ["x\\-y"])]


@pytest.mark.asyncio
async def test_foreign_content_is_left_alone(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("Hello")], config)
        page = await store.get_container("Book")
        assert page is not None
        section = await find_bookmarks_section(store, page.ref)
        assert section is not None
        await store.insert_node(section.ref, "my own thoughts")

        mutations = await _sync(store, "Book", [], config)

        assert [(mutation.action, mutation.text) for mutation in mutations] == [(DELETE, "> Hello")]
        assert await _entries(store, "Book") == [("my own thoughts", [])]


@pytest.mark.asyncio
async def test_user_block_quoting_a_line_survives_sync(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("Hello")], config)
        page = await store.get_container("Book")
        assert page is not None
        section = await find_bookmarks_section(store, page.ref)
        assert section is not None
        await store.insert_node(section.ref, "My thoughts on this chapter:\n> a line I quoted myself")

        mutations = await _sync(store, "Book", [_highlight("Hello")], config)

        assert mutations == []
        assert await _entries(store, "Book") == [
            ("> Hello", []),
            ("My thoughts on this chapter:\n> a line I quoted myself", []),
        ]


@pytest.mark.asyncio
async def test_matched_entry_properties_are_not_rewritten(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("Hello")], config)
        moved = AnnotationEntry(display_text="Hello", page_label=99, timestamp="2030-01-01 00:00:00")

        mutations = await _sync(store, "Book", [moved], config)

        assert mutations == []
        page = await store.get_container("Book")
        assert page is not None
        section = await find_bookmarks_section(store, page.ref)
        assert section is not None
        (entry,) = await store.get_children(section.ref)
        assert entry.properties["page"] == 1


@pytest.mark.asyncio
async def test_disabling_page_bookmarks_removes_them_retroactively(tmp_path: Path) -> None:
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        entries = [_highlight("Hello"), _page_mark()]
        await _sync(store, "Book", entries, RenderConfig(sync_page_bookmarks=True))
        assert [text for text, _ in await _entries(store, "Book")] == ["> Hello", "> Page bookmark"]

        mutations = await _sync(store, "Book", entries, RenderConfig(sync_page_bookmarks=False))

        assert [(mutation.action, mutation.text) for mutation in mutations] == [(DELETE, "> Page bookmark")]
        assert [text for text, _ in await _entries(store, "Book")] == ["> Hello"]


@pytest.mark.asyncio
async def test_surplus_duplicates_are_removed(tmp_path: Path) -> None:
    config = RenderConfig()
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", [_highlight("Hello")], config)
        page = await store.get_container("Book")
        assert page is not None
        section = await find_bookmarks_section(store, page.ref)
        assert section is not None
        duplicate = await store.insert_node(section.ref, "> Hello")

        mutations = await _sync(store, "Book", [_highlight("Hello")], config)

        assert [(mutation.action, mutation.node_id) for mutation in mutations] == [(DELETE, duplicate.id)]


@pytest.mark.asyncio
async def test_rerun_after_partial_sync_converges(tmp_path: Path) -> None:
    config = RenderConfig()
    entries = [_highlight("one", "n1"), _highlight("two"), _highlight("three")]
    with SQLiteDocumentStore(tmp_path / "store.db") as store:
        await _sync(store, "Book", entries[:2], config)

        mutations = await _sync(store, "Book", entries, config)
        again = await _sync(store, "Book", entries, config)

        assert [(mutation.action, mutation.text) for mutation in mutations] == [(INSERT, "> three")]
        assert again == []
        assert [text for text, _ in await _entries(store, "Book")] == ["> one", "> two", "> three"]
