"""Matching keys recomputed on every sync pass.

A book is matched by ``authors + "___" + title``. An entry is matched by the
text that follows its ``"> "`` marker, which is the dash-escaped display text
or the page-bookmark sentinel. Keys are never persisted.
"""

from __future__ import annotations

from typing import Protocol

from korsync.blocks.builder import (
    BOOK_HEADING_PREFIX,
    ENTRY_PREFIX,
    NO_TEXT_PLACEHOLDER,
    PAGE_BOOKMARK_TEXT,
    escape_dashes,
)
from korsync.metadata.models import AnnotationEntry, BookMetadata

BOOK_KEY_SEPARATOR = "___"


class _HasText(Protocol):
    text: str


def book_key(metadata: BookMetadata) -> str:
    return (metadata.authors or "") + BOOK_KEY_SEPARATOR + metadata.title


def heading_title(text: str) -> str | None:
    if not text.startswith(BOOK_HEADING_PREFIX):
        return None
    return text[len(BOOK_HEADING_PREFIX) :]


def stored_book_key(text: str, authors: object) -> str | None:
    """Key of a persisted book header from its heading text and authors value."""

    title = heading_title(text)
    if title is None:
        return None
    prefix = authors if isinstance(authors, str) else ""
    return prefix + BOOK_KEY_SEPARATOR + title


def entry_key(node: _HasText) -> str | None:
    """Recover the matching key from an entry node, or None for foreign content."""

    text = node.text
    if text.startswith(ENTRY_PREFIX):
        return text[len(ENTRY_PREFIX) :]
    return None


def raw_entry_key(entry: AnnotationEntry) -> str:
    if entry.is_page_bookmark:
        return PAGE_BOOKMARK_TEXT
    if entry.display_text:
        return escape_dashes(entry.display_text)
    return NO_TEXT_PLACEHOLDER


def is_page_bookmark_text(text: str) -> bool:
    return text.strip() == ENTRY_PREFIX + PAGE_BOOKMARK_TEXT
