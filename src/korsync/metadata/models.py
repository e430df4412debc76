"""Canonical data structures produced by metadata normalization."""

from __future__ import annotations

from dataclasses import dataclass, field


UNTITLED_BOOK = "Untitled Book"


@dataclass(slots=True)
class AnnotationEntry:
    """One highlighted passage, bookmark, or page-mark."""

    display_text: str | None = None
    personal_note: str | None = None
    page_label: int | float | str | None = None
    chapter: str | None = None
    timestamp: str = ""
    timestamp_updated: str | None = None
    is_page_bookmark: bool = False

    @property
    def display_timestamp(self) -> str:
        """Timestamp shown for the entry; a later edit time wins."""

        return self.timestamp_updated or self.timestamp


@dataclass(slots=True)
class SkippedEntry:
    """Source entry dropped during normalization and why."""

    index: int
    reason: str


@dataclass(slots=True)
class BookMetadata:
    """Canonical extraction result for one metadata file.

    ``entries is None`` means the source had no annotation field at all;
    an empty list means the field was present but empty.
    """

    title: str = UNTITLED_BOOK
    authors: str | None = None
    description: str | None = None
    language: str | None = None
    entries: list[AnnotationEntry] | None = None
    skipped: list[SkippedEntry] = field(default_factory=list)
    is_empty: bool = False
