"""Document store contract and SQLite implementation."""

from .base import Container, DocumentStore, NodeRef, PropertyMatch, StoredNode, StoreMutation
from .settings_repository import SettingsRepository
from .sqlite_store import SQLiteDocumentStore

__all__ = [
    "Container",
    "DocumentStore",
    "NodeRef",
    "PropertyMatch",
    "SQLiteDocumentStore",
    "SettingsRepository",
    "StoreMutation",
    "StoredNode",
]
