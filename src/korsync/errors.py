"""Domain errors raised across parsing, storage and sync orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


MALFORMED_ROOT = "malformed-root"
SYNTAX = "syntax"
SHAPE_MISMATCH = "shape-mismatch"


@dataclass(slots=True)
class ParseError(Exception):
    """Source document does not match the serialized-table shape."""

    reason: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (reason={self.reason})"


@dataclass(slots=True)
class SyncLookupError(LookupError):
    """A structural element expected in persisted state is missing."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class StoreOperationError(Exception):
    """The document store rejected a read or write."""

    operation: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (operation={self.operation})"


class SourcePermissionError(PermissionError):
    """Read access to the source root was revoked or never granted."""

    def __init__(self, path: Path | None, message: str) -> None:
        super().__init__(message)
        self.path = path
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"
