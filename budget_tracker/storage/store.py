"""
FinanceStore

One object holding every repository, plus the operations that span
collections: clear-all, first-run detection, usage info and bulk
export/import.

Export format (JSON document):
    {"categories": [...], "transactions": [...], "budgets": [...],
     "debts": [...], "settings": {...}}

repayments and notifications are only included when asked for, but
are always accepted on import.
"""

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, NoReturn, Optional

from pydantic import BaseModel, ValidationError

from budget_tracker.audit import AuditLogger
from budget_tracker.config import StorageSettings, get_settings
from budget_tracker.models.audit import AuditEventBuilder
from budget_tracker.models.entities import (
    Budget,
    Category,
    Debt,
    Notification,
    Repayment,
    Transaction,
)
from budget_tracker.models.preferences import UserSettings
from budget_tracker.storage.backends import FileKeyValueStore, MemoryKeyValueStore
from budget_tracker.storage.interface import (
    ImportFormatError,
    KeyValueStore,
    QuotaExceededError,
    StorageError,
    entry_size,
)
from budget_tracker.storage.repository import CollectionRepository, SettingsRepository


DEFAULT_KEY_PREFIX = "budget-tracker-"

# collection name -> entity model, in storage order
COLLECTIONS: dict[str, type] = {
    "categories": Category,
    "transactions": Transaction,
    "budgets": Budget,
    "debts": Debt,
    "repayments": Repayment,
    "notifications": Notification,
}
SETTINGS_NAME = "settings"

REQUIRED_IMPORT_KEYS = ("categories", "transactions", "budgets", "debts")
EXTENDED_EXPORT_KEYS = ("repayments", "notifications")

EMPTY_VALUES = ("", "[]", "{}")


class StorageInfo(BaseModel):
    used: int
    total: int
    percentage: float


class FinanceStore:
    """
    Facade over all collection repositories.

    Usage:
        store = FinanceStore(MemoryKeyValueStore())
        store.transactions.add(create_transaction(amount=12.5))
    """

    def __init__(
        self,
        backend: KeyValueStore,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        audit: Optional[AuditLogger] = None,
    ):
        self.backend = backend
        self.key_prefix = key_prefix
        self._audit = audit or AuditLogger()

        self.categories: CollectionRepository[Category] = self._repository("categories")
        self.transactions: CollectionRepository[Transaction] = self._repository("transactions")
        self.budgets: CollectionRepository[Budget] = self._repository("budgets")
        self.debts: CollectionRepository[Debt] = self._repository("debts")
        self.repayments: CollectionRepository[Repayment] = self._repository("repayments")
        self.notifications: CollectionRepository[Notification] = self._repository("notifications")
        self.settings = SettingsRepository(
            backend, self.key_for(SETTINGS_NAME), audit=self._audit
        )

    @classmethod
    def from_settings(cls, settings: Optional[StorageSettings] = None) -> "FinanceStore":
        """Build the backend described by process configuration."""
        settings = settings or get_settings().storage
        if settings.backend == "memory":
            backend: KeyValueStore = MemoryKeyValueStore(quota_bytes=settings.quota_bytes)
        else:
            backend = FileKeyValueStore(settings.data_dir, quota_bytes=settings.quota_bytes)
        return cls(backend, key_prefix=settings.key_prefix)

    def key_for(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    def _repository(self, name: str) -> CollectionRepository:
        return CollectionRepository(
            self.backend, self.key_for(name), COLLECTIONS[name], audit=self._audit
        )

    def repository(self, name: str) -> CollectionRepository:
        """Look up a collection repository by collection name."""
        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        return getattr(self, name)

    @property
    def all_keys(self) -> list[str]:
        return [self.key_for(name) for name in (*COLLECTIONS, SETTINGS_NAME)]

    # ------------------------------------------------------------------
    # Cross-collection operations
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        """Remove every collection and the settings."""
        for key in self.all_keys:
            self.backend.remove_item(key)
        self._audit.log(AuditEventBuilder.all_data_cleared(self.all_keys))

    def has_existing_data(self) -> bool:
        """True if any key holds something beyond an empty array/object."""
        for key in self.all_keys:
            value = self.backend.get_item(key)
            if value is not None and value.strip() not in EMPTY_VALUES:
                return True
        return False

    def storage_info(self) -> StorageInfo:
        used = sum(self.backend.size_of(key) for key in self.all_keys)
        total = self.backend.quota_bytes
        return StorageInfo(
            used=used,
            total=total,
            percentage=(used / total) * 100 if total else 0,
        )

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_data(self, include_extended: bool = False) -> dict[str, Any]:
        names = [name for name in COLLECTIONS if name not in EXTENDED_EXPORT_KEYS]
        if include_extended:
            names.extend(EXTENDED_EXPORT_KEYS)

        data: dict[str, Any] = {
            name: [item.to_storage() for item in self.repository(name).get_all()]
            for name in names
        }
        data[SETTINGS_NAME] = self.settings.get().to_storage()

        self._audit.log(AuditEventBuilder.data_exported(
            {name: len(data[name]) for name in names}
        ))
        return data

    def export_json(self, include_extended: bool = False) -> str:
        return json.dumps(self.export_data(include_extended), indent=2)

    @staticmethod
    def export_filename(today: Optional[datetime] = None) -> str:
        today = today or datetime.now(timezone.utc)
        return f"budget-tracker-export-{today.date().isoformat()}.json"

    def import_data(self, payload: Mapping[str, Any]) -> dict[str, int]:
        """
        Overwrite stored collections with an exported document.

        The whole document is validated and sized against the quota
        before anything is written, so a rejected import leaves the
        store unchanged.

        Returns:
            Record count per imported collection

        Raises:
            ImportFormatError: A required collection is missing or a
                record does not match its model
            QuotaExceededError: The imported data does not fit
        """
        if not isinstance(payload, Mapping):
            self._reject("Import document must be a JSON object")

        missing = [key for key in REQUIRED_IMPORT_KEYS if payload.get(key) is None]
        if missing:
            self._reject(f"Invalid data format: missing {', '.join(missing)}")

        parsed: dict[str, list] = {}
        for name, model in COLLECTIONS.items():
            if payload.get(name) is None:
                continue
            records = payload[name]
            if not isinstance(records, list):
                self._reject(f"Invalid data format: {name} must be an array")
            try:
                parsed[name] = [model.model_validate(record) for record in records]
            except ValidationError as e:
                self._reject(f"Invalid record in {name}: {e}")

        settings: Optional[UserSettings] = None
        if payload.get(SETTINGS_NAME):
            try:
                settings = UserSettings.upgrade(payload[SETTINGS_NAME])
            except ValidationError as e:
                self._reject(f"Invalid settings: {e}")

        writes = {
            self.key_for(name): self.repository(name).serialize(records)
            for name, records in parsed.items()
        }
        if settings is not None:
            writes[self.settings.key] = self.settings.serialize(settings)
        self._write_all(writes)

        counts = {name: len(records) for name, records in parsed.items()}
        self._audit.log(AuditEventBuilder.data_imported(counts))
        return counts

    def import_json(self, text: str) -> dict[str, int]:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            self._reject(f"Import file is not valid JSON: {e}")
        return self.import_data(payload)

    def _write_all(self, writes: Mapping[str, str]) -> None:
        """
        Write several keys as one unit.

        The combined size is checked against the quota up front. If the
        backend still fails part way, the keys already written get their
        previous values back before the error propagates.

        Raises:
            QuotaExceededError: The values do not fit; nothing was written
            StorageError: A backend write failed; the store was restored
        """
        projected = (
            self.backend.used_bytes()
            - sum(self.backend.size_of(key) for key in writes)
            + sum(entry_size(key, value) for key, value in writes.items())
        )
        if projected > self.backend.quota_bytes:
            error = QuotaExceededError()
            self._audit.log(AuditEventBuilder.quota_exceeded(", ".join(writes), str(error)))
            raise error

        previous = {key: self.backend.get_item(key) for key in writes}
        written = []
        try:
            for key, value in writes.items():
                self.backend.set_item(key, value)
                written.append(key)
        except StorageError as e:
            self._audit.log(AuditEventBuilder.save_failed(", ".join(writes), str(e)))
            for key in reversed(written):
                if previous[key] is None:
                    self.backend.remove_item(key)
                else:
                    self.backend.set_item(key, previous[key])
            raise

    def _reject(self, reason: str) -> NoReturn:
        self._audit.log(AuditEventBuilder.import_rejected(reason))
        raise ImportFormatError(reason)
