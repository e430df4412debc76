"""Discovery and reading of KOReader metadata files."""

from __future__ import annotations

import os
from pathlib import Path

from charset_normalizer import from_bytes

from korsync.errors import SourcePermissionError

METADATA_SUFFIX = ".lua"
METADATA_MARKER = "metadata"


def is_metadata_file(path: Path) -> bool:
    name = path.name.lower()
    return name.endswith(METADATA_SUFFIX) and METADATA_MARKER in name


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass

    best = from_bytes(raw).best()
    if best and best.encoding:
        return raw.decode(best.encoding, errors="replace")
    return raw.decode("utf-8", errors="replace")


class DirectorySource:
    """A user-chosen root directory holding ``*.sdr`` metadata folders."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def has_permission(self) -> bool:
        if self._root.is_dir():
            return os.access(self._root, os.R_OK | os.X_OK)
        return self._root.is_file() and os.access(self._root, os.R_OK)

    def verify_permission(self) -> None:
        if not self._root.exists():
            raise SourcePermissionError(self._root, "KOReader directory does not exist")
        if not self.has_permission():
            raise SourcePermissionError(self._root, "KOReader directory is not readable")

    def metadata_files(self) -> list[Path]:
        """Return every metadata file under the root, sorted by path."""

        if self._root.is_file():
            return [self._root] if is_metadata_file(self._root) else []
        return sorted(path for path in self._root.rglob("*") if path.is_file() and is_metadata_file(path))

    def read_text(self, path: Path) -> str:
        return _decode(path.read_bytes())
