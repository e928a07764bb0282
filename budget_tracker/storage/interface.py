"""
Abstract Storage Interface

DESIGN DECISION: Repositories talk to a tiny synchronous key-value
interface that mirrors browser local storage: string keys, string
values, a finite quota. This allows us to:
1. Run the same repositories on disk or in memory
2. Test quota behaviour deterministically
3. Swap in another backend without touching business logic

The interface is intentionally simple - we're not building a database.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Optional


QUOTA_REMEDY = (
    "Storage quota exceeded. Consider enabling remote storage in settings."
)


class KeyValueStore(ABC):
    """
    Abstract synchronous string store with a byte quota.

    Sizes are counted the way browsers estimate local storage usage:
    two bytes per character of key and value.
    """

    quota_bytes: int

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read a value.

        Returns:
            The stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            QuotaExceededError: If the write would exceed the quota.
                The previous value is left untouched.
            StorageError: If the backend fails for any other reason
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op."""
        pass

    @abstractmethod
    def keys(self) -> Iterator[str]:
        pass

    def size_of(self, key: str) -> int:
        """Approximate bytes used by one entry (0 if absent)."""
        value = self.get_item(key)
        if value is None:
            return 0
        return entry_size(key, value)

    def used_bytes(self) -> int:
        return sum(self.size_of(key) for key in self.keys())


def entry_size(key: str, value: str) -> int:
    return (len(key) + len(value)) * 2


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class SerializationError(StorageError):
    """A stored value is not valid JSON or does not match its model."""
    pass


class QuotaExceededError(StorageError):
    """The backend rejected a write because its size limit was reached."""

    def __init__(self, message: str = QUOTA_REMEDY, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ImportFormatError(StorageError):
    """An import document is missing required collections."""
    pass
