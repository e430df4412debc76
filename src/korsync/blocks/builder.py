"""Build the normalized content tree for one book."""

from __future__ import annotations

from typing import Mapping

from korsync.blocks.models import ContentNode, Scalar
from korsync.config import RenderConfig
from korsync.metadata.models import AnnotationEntry, BookMetadata

BOOK_HEADING_PREFIX = "## "
BOOKMARKS_HEADING = "### Bookmarks"
ENTRY_PREFIX = "> "
PAGE_BOOKMARK_TEXT = "Page bookmark"
NO_TEXT_PLACEHOLDER = "(no text available)"


def escape_dashes(text: str) -> str:
    """Prefix every dash so the outline format does not read it as a list marker."""

    return text.replace("-", "\\-")


def truncate_string(value: str | None, length: int) -> str:
    if not value:
        return ""
    return value[:length]


def _compact(properties: Mapping[str, Scalar | None]) -> dict[str, Scalar]:
    return {key: value for key, value in properties.items() if value is not None}


def entry_text(entry: AnnotationEntry) -> str:
    if entry.is_page_bookmark:
        return ENTRY_PREFIX + PAGE_BOOKMARK_TEXT
    if entry.display_text:
        return ENTRY_PREFIX + escape_dashes(entry.display_text)
    return ENTRY_PREFIX + NO_TEXT_PLACEHOLDER


def build_entry_node(entry: AnnotationEntry, config: RenderConfig) -> ContentNode:
    """Build one annotation node with its optional personal-note child."""

    has_note = bool(entry.personal_note)
    children: tuple[ContentNode, ...] = ()
    if entry.personal_note:
        children = (ContentNode(text=escape_dashes(entry.personal_note)),)

    return ContentNode(
        text=entry_text(entry),
        properties=_compact(
            {
                "datetime": entry.display_timestamp or None,
                "page": entry.page_label,
                "chapter": entry.chapter,
                "collapsed": config.collapse_by_default and has_note,
            }
        ),
        children=children,
    )


def book_header_properties(metadata: BookMetadata, config: RenderConfig) -> dict[str, Scalar]:
    """Header properties of a book; ``authors`` is written even when empty."""

    return _compact(
        {
            "authors": metadata.authors or "",
            "description": truncate_string(metadata.description, config.max_description_length),
            "language": metadata.language,
        }
    )


def build_bookmarks_section(entries: list[AnnotationEntry], config: RenderConfig) -> ContentNode:
    """Build the bookmarks section, merging entries that share a matching key.

    Entries with the same text are one logical annotation: the first one
    keeps its position and the last one parsed supplies the content.
    """

    nodes: list[ContentNode] = []
    positions: dict[str, int] = {}
    for entry in entries:
        if entry.is_page_bookmark and not config.sync_page_bookmarks:
            continue
        node = build_entry_node(entry, config)
        if node.text in positions:
            nodes[positions[node.text]] = node
            continue
        positions[node.text] = len(nodes)
        nodes.append(node)

    return ContentNode(
        text=BOOKMARKS_HEADING,
        properties={"collapsed": config.collapse_by_default},
        children=tuple(nodes),
    )


def build_book_node(metadata: BookMetadata, config: RenderConfig) -> ContentNode | None:
    """Build the book header tree, or None when there is nothing to import."""

    if metadata.is_empty:
        return None
    if metadata.entries is not None and not metadata.entries and not metadata.skipped:
        return None

    header_text = BOOK_HEADING_PREFIX + metadata.title
    properties = book_header_properties(metadata, config)
    if metadata.entries is None:
        return ContentNode(text=header_text, properties=properties)

    section = build_bookmarks_section(metadata.entries, config)
    return ContentNode(text=header_text, properties=properties, children=(section,))
