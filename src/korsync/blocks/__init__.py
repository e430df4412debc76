"""Content tree construction and matching keys."""

from .builder import build_book_node, build_entry_node
from .keys import book_key, entry_key, raw_entry_key
from .models import ContentNode

__all__ = [
    "ContentNode",
    "book_key",
    "build_book_node",
    "build_entry_node",
    "entry_key",
    "raw_entry_key",
]
