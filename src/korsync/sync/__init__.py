"""Reconciliation engine and sync orchestrators."""

from .base import BatchSync, SyncReport
from .notify import ConsoleNotifier, Notifier
from .per_book import PerBookSync
from .progress import ProgressNotification
from .reconciler import TreeReconciler
from .runner import resolve_source, run_sync
from .single import SinglePageSync

__all__ = [
    "BatchSync",
    "ConsoleNotifier",
    "Notifier",
    "PerBookSync",
    "ProgressNotification",
    "SinglePageSync",
    "SyncReport",
    "TreeReconciler",
    "resolve_source",
    "run_sync",
]
