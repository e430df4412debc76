"""Per-book containers and the books index."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import re
from typing import Any, Mapping

from korsync.blocks.builder import BOOKMARKS_HEADING
from korsync.blocks.models import ContentNode
from korsync.config import NAMING_AUTHOR_TITLE, SyncSettings
from korsync.metadata.models import BookMetadata
from korsync.store.base import Container, DocumentStore, NodeRef, StoredNode
from korsync.sync.tree import insert_tree

MAX_PAGE_NAME_LENGTH = 100
INDEX_HEADING = "# KOReader Books Index"
INDEX_TYPE = "koreader-index"

_INVALID_NAME_CHARS_RE = re.compile(r'[<>:"/\\|?*#\[\]]')
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(slots=True)
class BookInfo:
    title: str
    authors: str | None
    page_name: str
    container_id: int
    synced_at: datetime


def generate_page_name(metadata: BookMetadata, settings: SyncSettings) -> str:
    prefix = settings.book_page_prefix
    if settings.page_naming_convention == NAMING_AUTHOR_TITLE and metadata.authors:
        return f"{prefix}{metadata.authors} - {metadata.title}"
    return f"{prefix}{metadata.title}"


def sanitize_page_name(name: str) -> str:
    """Strip path and markup characters, collapse whitespace, cap the length."""

    cleaned = _INVALID_NAME_CHARS_RE.sub("", name)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned[:MAX_PAGE_NAME_LENGTH]


async def get_or_create_container(
    store: DocumentStore,
    name: str,
    properties: Mapping[str, Any] | None = None,
) -> Container:
    container = await store.get_container(name)
    if container is not None:
        return container
    return await store.create_container(name, properties)


async def find_bookmarks_section(store: DocumentStore, parent: NodeRef) -> StoredNode | None:
    for child in await store.get_children(parent):
        if child.text == BOOKMARKS_HEADING:
            return child
    return None


def build_index_tree(books: list[BookInfo], synced_at: datetime) -> ContentNode:
    entries = tuple(
        ContentNode(
            text=f"[[{book.page_name}]]",
            properties={"authors": book.authors} if book.authors else {},
        )
        for book in books
    )
    return ContentNode(
        text=INDEX_HEADING,
        children=(
            ContentNode(text=f"Last synced: {synced_at.strftime('%Y-%m-%d %H:%M:%S')}"),
            ContentNode(text=f"## All Books ({len(books)})", children=entries),
        ),
    )


async def rebuild_index(
    store: DocumentStore,
    books: list[BookInfo],
    settings: SyncSettings,
    synced_at: datetime | None = None,
) -> Container:
    """Clear the index container and list every book from this pass."""

    index = await get_or_create_container(store, settings.index_page_name, {"type": INDEX_TYPE})
    for child in await store.get_children(index.ref):
        await store.delete_node(child.id)
    await insert_tree(store, index.ref, build_index_tree(books, synced_at or datetime.now()))
    return index
