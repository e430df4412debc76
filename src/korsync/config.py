"""Runtime configuration for sync runs."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping


DEFAULT_DB_PATH = ".korsync.db"
DEFAULT_MAX_DESCRIPTION_LENGTH = 250
DEFAULT_INDEX_PAGE_NAME = "KOReader Books"
DEFAULT_SYNC_PAGE_NAME = "_logseq-koreader-sync"

SYNC_MODE_SINGLE_PAGE = "single-page"
SYNC_MODE_PER_PAGE = "per-page"
SYNC_MODES = (SYNC_MODE_SINGLE_PAGE, SYNC_MODE_PER_PAGE)

NAMING_AUTHOR_TITLE = "author_title"
NAMING_BOOK_TITLE = "book_title"
NAMING_CONVENTIONS = (NAMING_AUTHOR_TITLE, NAMING_BOOK_TITLE)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(*, name: str, raw_value: str) -> bool:
    value = raw_value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false)")


def _parse_non_negative_int(*, name: str, raw_value: str) -> int:
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    return value


def _parse_choice(*, name: str, raw_value: str, choices: tuple[str, ...]) -> str:
    value = raw_value.strip()
    if value not in choices:
        raise ValueError(f"{name} must be one of: {', '.join(choices)}")
    return value


@dataclass(frozen=True, slots=True)
class RenderConfig:
    """Options consumed by the block builder and the reconciler."""

    max_description_length: int = DEFAULT_MAX_DESCRIPTION_LENGTH
    collapse_by_default: bool = True
    sync_page_bookmarks: bool = True


@dataclass(frozen=True, slots=True)
class SyncSettings:
    """Validated settings for one sync run."""

    db_path: Path = Path(DEFAULT_DB_PATH)
    remember_directory: bool = True
    sync_page_bookmarks: bool = True
    max_description_length: int = DEFAULT_MAX_DESCRIPTION_LENGTH
    collapse_bookmarks: bool = True
    sync_mode: str = SYNC_MODE_SINGLE_PAGE
    page_naming_convention: str = NAMING_AUTHOR_TITLE
    book_page_prefix: str = ""
    index_page_name: str = DEFAULT_INDEX_PAGE_NAME
    sync_page_name: str = DEFAULT_SYNC_PAGE_NAME

    def render_config(self) -> RenderConfig:
        return RenderConfig(
            max_description_length=self.max_description_length,
            collapse_by_default=self.collapse_bookmarks,
            sync_page_bookmarks=self.sync_page_bookmarks,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SyncSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        db_path_raw = source.get("KORSYNC_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path_raw:
            raise ValueError("KORSYNC_DB_PATH cannot be empty")

        index_page_name = source.get("KORSYNC_INDEX_PAGE_NAME", DEFAULT_INDEX_PAGE_NAME).strip()
        if not index_page_name:
            raise ValueError("KORSYNC_INDEX_PAGE_NAME cannot be empty")

        sync_page_name = source.get("KORSYNC_SYNC_PAGE_NAME", DEFAULT_SYNC_PAGE_NAME).strip()
        if not sync_page_name:
            raise ValueError("KORSYNC_SYNC_PAGE_NAME cannot be empty")

        return cls(
            db_path=Path(db_path_raw),
            remember_directory=_parse_bool(
                name="KORSYNC_REMEMBER_DIRECTORY",
                raw_value=source.get("KORSYNC_REMEMBER_DIRECTORY", "true"),
            ),
            sync_page_bookmarks=_parse_bool(
                name="KORSYNC_SYNC_PAGE_BOOKMARKS",
                raw_value=source.get("KORSYNC_SYNC_PAGE_BOOKMARKS", "true"),
            ),
            max_description_length=_parse_non_negative_int(
                name="KORSYNC_MAX_DESCRIPTION_LENGTH",
                raw_value=source.get("KORSYNC_MAX_DESCRIPTION_LENGTH", str(DEFAULT_MAX_DESCRIPTION_LENGTH)),
            ),
            collapse_bookmarks=_parse_bool(
                name="KORSYNC_COLLAPSE_BOOKMARKS",
                raw_value=source.get("KORSYNC_COLLAPSE_BOOKMARKS", "true"),
            ),
            sync_mode=_parse_choice(
                name="KORSYNC_SYNC_MODE",
                raw_value=source.get("KORSYNC_SYNC_MODE", SYNC_MODE_SINGLE_PAGE),
                choices=SYNC_MODES,
            ),
            page_naming_convention=_parse_choice(
                name="KORSYNC_PAGE_NAMING",
                raw_value=source.get("KORSYNC_PAGE_NAMING", NAMING_AUTHOR_TITLE),
                choices=NAMING_CONVENTIONS,
            ),
            book_page_prefix=source.get("KORSYNC_BOOK_PAGE_PREFIX", ""),
            index_page_name=index_page_name,
            sync_page_name=sync_page_name,
        )
