"""
Storage Package

Provides the key-value interface, its backends, the per-collection
repositories and the FinanceStore facade.
"""

from budget_tracker.storage.interface import (
    ImportFormatError,
    KeyValueStore,
    NotFoundError,
    QuotaExceededError,
    SerializationError,
    StorageError,
)
from budget_tracker.storage.backends import FileKeyValueStore, MemoryKeyValueStore
from budget_tracker.storage.repository import CollectionRepository, SettingsRepository
from budget_tracker.storage.store import FinanceStore, StorageInfo

__all__ = [
    # Interfaces
    "KeyValueStore",
    # Exceptions
    "ImportFormatError",
    "NotFoundError",
    "QuotaExceededError",
    "SerializationError",
    "StorageError",
    # Backends
    "FileKeyValueStore",
    "MemoryKeyValueStore",
    # Repositories
    "CollectionRepository",
    "FinanceStore",
    "SettingsRepository",
    "StorageInfo",
]
