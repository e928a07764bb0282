"""
Collection Repositories

Each entity kind is stored as one JSON array under its own key. Every
operation is read-all -> mutate -> write-all; there is no partial update
at the storage layer and no transaction log.

DESIGN DECISION: Mutations load the collection into an id-keyed ordered
mapping (O(1) lookup/replace, stored order preserved) and flush() the
full snapshot back. Concurrent writers are not coordinated: whichever
flush runs last wins.

TRADEOFFS:
- A read never sees a half-written collection (whole-value writes)
- A corrupt stored value reads as empty instead of raising; the
  failure is visible only in the audit log
"""

import json
from collections.abc import Iterable, Mapping
from typing import Any, Generic, Optional, TypeVar

from pydantic import ValidationError

from budget_tracker.audit import AuditLogger
from budget_tracker.models.audit import AuditEventBuilder, AuditEventType
from budget_tracker.models.entities import EntityModel, now_ms
from budget_tracker.models.preferences import UserSettings
from budget_tracker.storage.interface import (
    KeyValueStore,
    NotFoundError,
    QuotaExceededError,
    SerializationError,
    StorageError,
)


T = TypeVar("T", bound=EntityModel)


class CollectionRepository(Generic[T]):
    """
    Whole-collection storage for one entity kind.

    Items are pydantic entity models; plain mappings are accepted on
    write and validated against the model first.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        model: type[T],
        audit: Optional[AuditLogger] = None,
    ):
        self._store = store
        self.key = key
        self.model = model
        self._audit = audit or AuditLogger()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self) -> list[T]:
        """
        Full collection in stored order.

        Absent or unparseable values read as an empty list.
        """
        raw = self._store.get_item(self.key)
        if raw is None:
            return []

        try:
            return self._parse(raw)
        except SerializationError as e:
            self._audit.log(AuditEventBuilder.parse_failed(self.key, str(e)))
            return []

    def get_by_id(self, item_id: str) -> Optional[T]:
        for item in self.get_all():
            if item.id == item_id:
                return item
        return None

    def require(self, item_id: str) -> T:
        """
        Like get_by_id, for callers that cannot proceed without the record.

        Raises:
            NotFoundError: If no record has this ID
        """
        item = self.get_by_id(item_id)
        if item is None:
            raise NotFoundError(f"{self.model.__name__} not found: {item_id}")
        return item

    def load_index(self) -> dict[str, T]:
        """
        Collection as an id-keyed mapping in stored order.

        If the stored array holds duplicate IDs, the last record wins
        and keeps the first one's position.
        """
        return {item.id: item for item in self.get_all()}

    def _parse(self, raw: str) -> list[T]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Invalid JSON under {self.key}: {e}")

        if not isinstance(data, list):
            raise SerializationError(
                f"Expected an array under {self.key}, got {type(data).__name__}"
            )

        try:
            return [self.model.model_validate(item) for item in data]
        except ValidationError as e:
            raise SerializationError(f"Invalid record under {self.key}: {e}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, items: Iterable[T | Mapping[str, Any]]) -> None:
        """
        Serialize and overwrite the entire collection.

        Raises:
            QuotaExceededError: The store is full; nothing was written
            StorageError: Any other backend failure
        """
        records = [self._coerce(item) for item in items]
        payload = self.serialize(records)

        try:
            self._store.set_item(self.key, payload)
        except QuotaExceededError as e:
            self._audit.log(AuditEventBuilder.quota_exceeded(self.key, str(e)))
            raise
        except StorageError as e:
            self._audit.log(AuditEventBuilder.save_failed(self.key, str(e)))
            raise

        self._audit.log(AuditEventBuilder.collection_saved(self.key, len(records)))

    def serialize(self, items: Iterable[T | Mapping[str, Any]]) -> str:
        """The JSON array save() would write for ``items``."""
        return json.dumps([self._coerce(item).to_storage() for item in items])

    def flush(self, index: Mapping[str, T]) -> None:
        """Write an id-keyed snapshot back as the full collection."""
        self.save(index.values())

    def add(self, item: T | Mapping[str, Any]) -> T:
        """
        Append a record.

        A record whose ID is already stored replaces it in place, which
        makes re-importing the same record idempotent.
        """
        record = self._coerce(item)
        index = self.load_index()
        index[record.id] = record
        self.flush(index)
        self._audit.log(
            AuditEventBuilder.item_changed(AuditEventType.ITEM_ADDED, self.key, record.id)
        )
        return record

    def update(
        self,
        item_id: str,
        changes: Optional[Mapping[str, Any]] = None,
        **fields: Any,
    ) -> Optional[T]:
        """
        Merge fields into a stored record and restamp updatedAt.

        Returns:
            The updated record, or None if no record has this ID
        """
        index = self.load_index()
        current = index.get(item_id)
        if current is None:
            return None

        partial = self.model.normalize_keys({**(changes or {}), **fields})
        merged = {**current.to_storage(), **partial}
        merged["id"] = item_id
        merged["updatedAt"] = now_ms()

        updated = self.model.model_validate(merged)
        index[item_id] = updated
        self.flush(index)
        self._audit.log(
            AuditEventBuilder.item_changed(AuditEventType.ITEM_UPDATED, self.key, item_id)
        )
        return updated

    def delete(self, item_id: str) -> bool:
        """
        Remove a record. Dependents (transactions of a category,
        repayments of a debt) are left untouched.

        Returns:
            True if a record was removed
        """
        index = self.load_index()
        if index.pop(item_id, None) is None:
            return False

        self.flush(index)
        self._audit.log(
            AuditEventBuilder.item_changed(AuditEventType.ITEM_DELETED, self.key, item_id)
        )
        return True

    def clear(self) -> None:
        """Remove the key entirely. Safe to call repeatedly."""
        self._store.remove_item(self.key)
        self._audit.log(AuditEventBuilder.collection_cleared(self.key))

    def _coerce(self, item: T | Mapping[str, Any]) -> T:
        if isinstance(item, self.model):
            return item
        if isinstance(item, EntityModel):
            return self.model.model_validate(item.to_storage())
        return self.model.model_validate(item)


class SettingsRepository:
    """
    Singleton accessor for UserSettings.

    Every read goes through UserSettings.upgrade(), so fields added
    after the settings were first saved come back with their defaults.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        audit: Optional[AuditLogger] = None,
    ):
        self._store = store
        self.key = key
        self._audit = audit or AuditLogger()

    def get(self) -> UserSettings:
        raw = self._store.get_item(self.key)
        if raw is None:
            return UserSettings.defaults()

        try:
            return UserSettings.upgrade(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            self._audit.log(AuditEventBuilder.parse_failed(self.key, str(e)))
            return UserSettings.defaults()

    def get_all(self) -> list[UserSettings]:
        return [self.get()]

    def save(self, settings: UserSettings | Mapping[str, Any]) -> UserSettings:
        if not isinstance(settings, UserSettings):
            settings = UserSettings.upgrade(settings)

        try:
            self._store.set_item(self.key, self.serialize(settings))
        except QuotaExceededError as e:
            self._audit.log(AuditEventBuilder.quota_exceeded(self.key, str(e)))
            raise
        except StorageError as e:
            self._audit.log(AuditEventBuilder.save_failed(self.key, str(e)))
            raise

        self._audit.log(AuditEventBuilder.settings_saved(self.key))
        return settings

    @staticmethod
    def serialize(settings: UserSettings) -> str:
        return json.dumps(settings.to_storage())

    def update(
        self,
        changes: Optional[Mapping[str, Any]] = None,
        **fields: Any,
    ) -> UserSettings:
        """Deep-merge changes into the current settings and save."""
        updated = self.get().merged_with({**(changes or {}), **fields})
        return self.save(updated)

    def clear(self) -> None:
        self._store.remove_item(self.key)
        self._audit.log(AuditEventBuilder.collection_cleared(self.key))
