"""Metadata parsing and normalization interfaces."""

from .models import AnnotationEntry, BookMetadata, SkippedEntry
from .normalizer import normalize, normalize_authors, parse_metadata

__all__ = [
    "AnnotationEntry",
    "BookMetadata",
    "SkippedEntry",
    "normalize",
    "normalize_authors",
    "parse_metadata",
]
