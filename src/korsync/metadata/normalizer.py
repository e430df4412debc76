"""Normalize parsed KOReader metadata tables into ``BookMetadata`` values."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from korsync.errors import MALFORMED_ROOT, SHAPE_MISMATCH, ParseError
from korsync.metadata.luatable import LuaTable, parse_lua_table
from korsync.metadata.models import UNTITLED_BOOK, AnnotationEntry, BookMetadata, SkippedEntry

logger = logging.getLogger(__name__)

_DISCARDED_FIELDS = {"stats"}


def normalize_authors(authors: str | None) -> str | None:
    """Join multi-author continuations into one comma-separated string."""

    if not authors:
        return None
    return authors.replace("\\\n", ", ").replace("\n", ", ")


def _plain(table: LuaTable) -> dict[Any, Any]:
    return {
        item.key: _plain(item.value) if isinstance(item.value, LuaTable) else item.value
        for item in table.fields
    }


def _classify(key: str, table: LuaTable) -> list[dict[Any, Any]] | dict[Any, Any]:
    """Turn a second-level table into a list of records or a flat record.

    The first element decides: a table there means the whole field is a list.
    A record whose first value happens to be a table is therefore read as a
    list; non-table elements found in such a list are dropped with a warning.
    """

    if table.fields and isinstance(table.fields[0].value, LuaTable):
        rows: list[dict[Any, Any]] = []
        for item in table.fields:
            if isinstance(item.value, LuaTable):
                rows.append(_plain(item.value))
            else:
                logger.warning(
                    "Dropping non-table element %r in list-shaped field %r",
                    item.key,
                    key,
                )
        return rows
    return _plain(table)


def _to_record(root: LuaTable) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for item in root.fields:
        key = str(item.key)
        if key in _DISCARDED_FIELDS:
            continue
        if isinstance(item.value, LuaTable):
            record[key] = _classify(key, item.value)
        else:
            record[key] = item.value
    return record


def _text(value: Any) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _page_label(value: Any) -> int | float | str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, str)):
        return value
    return None


def _annotation_entry(index: int, item: Mapping[Any, Any]) -> AnnotationEntry | SkippedEntry:
    pos0 = item.get("pos0")
    is_page_bookmark = pos0 is None or pos0 is False or pos0 == ""
    text = _text(item.get("text"))
    if not is_page_bookmark and text is None:
        return SkippedEntry(index=index, reason="highlight has no text")

    return AnnotationEntry(
        display_text=None if is_page_bookmark else text,
        personal_note=_text(item.get("note")),
        page_label=_page_label(item.get("pageno")),
        chapter=_text(item.get("chapter")),
        timestamp=_text(item.get("datetime")) or "",
        timestamp_updated=_text(item.get("datetime_updated")),
        is_page_bookmark=is_page_bookmark,
    )


def _legacy_bookmark_entry(index: int, item: Mapping[Any, Any]) -> AnnotationEntry | SkippedEntry:
    notes = _text(item.get("notes"))
    if notes is None:
        return SkippedEntry(index=index, reason="legacy bookmark has no notes")

    return AnnotationEntry(
        display_text=notes,
        personal_note=_text(item.get("text")),
        page_label=_page_label(item.get("page")),
        chapter=_text(item.get("chapter")),
        timestamp=_text(item.get("datetime")) or "",
        is_page_bookmark=False,
    )


def _entries_field(record: Mapping[str, Any], key: str) -> list[dict[Any, Any]] | None:
    if key not in record:
        return None
    value = record[key]
    if isinstance(value, list):
        return value
    if isinstance(value, dict) and not value:
        return []
    raise ParseError(SHAPE_MISMATCH, f"Field {key!r} is not a list of entries")


def normalize(root: LuaTable) -> BookMetadata:
    """Normalize a parsed metadata table into canonical book metadata."""

    if not isinstance(root, LuaTable):
        raise ParseError(MALFORMED_ROOT, "Metadata root is not a table")

    record = _to_record(root)
    doc_props = record.get("doc_props")
    if doc_props is None:
        raise ParseError(MALFORMED_ROOT, "Metadata has no doc_props table")
    if not isinstance(doc_props, dict):
        raise ParseError(SHAPE_MISMATCH, "Field 'doc_props' is not a record")

    metadata = BookMetadata(
        title=_text(doc_props.get("title")) or UNTITLED_BOOK,
        authors=normalize_authors(_text(doc_props.get("authors"))),
        description=_text(doc_props.get("description")),
        language=_text(doc_props.get("language")),
        is_empty=not doc_props,
    )

    build_entry = _annotation_entry
    rows = _entries_field(record, "annotations")
    if rows is None:
        build_entry = _legacy_bookmark_entry
        rows = _entries_field(record, "bookmarks")
    if rows is None:
        return metadata

    entries: list[AnnotationEntry] = []
    for index, row in enumerate(rows, start=1):
        result = build_entry(index, row)
        if isinstance(result, SkippedEntry):
            logger.debug("Skipping entry %d of %r: %s", index, metadata.title, result.reason)
            metadata.skipped.append(result)
            continue
        entries.append(result)
    metadata.entries = entries
    return metadata


def parse_metadata(text: str) -> BookMetadata:
    """Parse and normalize the text of one metadata file."""

    return normalize(parse_lua_table(text))
