"""Source file discovery."""

from .filesystem import DirectorySource, is_metadata_file

__all__ = ["DirectorySource", "is_metadata_file"]
