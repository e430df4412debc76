"""Automation services for folder-triggered sync passes."""

from korsync.automation.watcher import DebouncedMetadataHandler, MetadataFolderWatcher

__all__ = [
    "DebouncedMetadataHandler",
    "MetadataFolderWatcher",
]
