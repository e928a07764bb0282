"""
Key-Value Store Backends

Two implementations of KeyValueStore:
- MemoryKeyValueStore: a dict, for tests and throwaway sessions
- FileKeyValueStore: one file per key inside a data directory

Both enforce the same quota rule before writing, so a rejected write
never leaves a partially written value behind.
"""

import errno
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

from budget_tracker.storage.interface import (
    KeyValueStore,
    QuotaExceededError,
    StorageError,
    entry_size,
)


DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024
FILE_SUFFIX = ".json"


class MemoryKeyValueStore(KeyValueStore):
    """In-process store. Contents are lost when the object goes away."""

    def __init__(self, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        _check_quota(self, key, value)
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))


class FileKeyValueStore(KeyValueStore):
    """
    Directory-backed store: key "budget-tracker-debts" lives in
    ``<data_dir>/budget-tracker-debts.json``.

    Writes go to a temporary file that is then renamed over the target,
    so readers see either the old or the new value, never a mix.
    """

    def __init__(self, data_dir: Path | str, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        self.data_dir = Path(data_dir)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}{FILE_SUFFIX}"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        _check_quota(self, key, value)

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.data_dir, prefix=f".{key}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            if e.errno in (errno.ENOSPC, errno.EDQUOT):
                raise QuotaExceededError(key=key)
            raise StorageError(f"Failed to write {key}: {e}")

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}")

    def keys(self) -> Iterator[str]:
        if not self.data_dir.is_dir():
            return iter([])
        return iter(sorted(
            path.name[: -len(FILE_SUFFIX)]
            for path in self.data_dir.iterdir()
            if path.is_file()
            and path.name.endswith(FILE_SUFFIX)
            and not path.name.startswith(".")
        ))


def _check_quota(store: KeyValueStore, key: str, value: str) -> None:
    projected = store.used_bytes() - store.size_of(key) + entry_size(key, value)
    if projected > store.quota_bytes:
        raise QuotaExceededError(key=key)
