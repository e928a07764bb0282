"""
Tests for the persistence layer

Covers the key-value backends, collection repositories, the settings
singleton and the FinanceStore cross-collection operations. Everything
runs against the in-memory backend except the file backend tests,
which use pytest's tmp_path.
"""

import json
import pytest
from datetime import datetime

from budget_tracker.config import StorageSettings
from budget_tracker.insights import resolve_category
from budget_tracker.models import (
    CURRENT_SCHEMA_VERSION,
    AuditEventType,
    Transaction,
    create_category,
    create_debt,
    create_repayment,
    create_transaction,
)
from budget_tracker.storage import (
    FileKeyValueStore,
    FinanceStore,
    ImportFormatError,
    MemoryKeyValueStore,
    NotFoundError,
    QuotaExceededError,
    StorageError,
)
from budget_tracker.storage.interface import QUOTA_REMEDY, entry_size


class TestMemoryBackend:
    """Tests for MemoryKeyValueStore."""

    def test_get_missing_is_none(self):
        assert MemoryKeyValueStore().get_item("nope") is None

    def test_set_get_remove(self):
        backend = MemoryKeyValueStore()
        backend.set_item("k", "v")
        assert backend.get_item("k") == "v"
        backend.remove_item("k")
        backend.remove_item("k")
        assert backend.get_item("k") is None

    def test_entry_size_counts_two_bytes_per_char(self):
        assert entry_size("ab", "cde") == 10

    def test_quota_rejection_keeps_old_value(self):
        backend = MemoryKeyValueStore(quota_bytes=100)
        backend.set_item("k", "a" * 40)

        with pytest.raises(QuotaExceededError) as exc_info:
            backend.set_item("k", "a" * 60)

        assert str(exc_info.value) == QUOTA_REMEDY
        assert exc_info.value.key == "k"
        assert backend.get_item("k") == "a" * 40

    def test_replacing_a_value_frees_its_old_size(self):
        backend = MemoryKeyValueStore(quota_bytes=100)
        backend.set_item("k", "a" * 40)
        backend.set_item("k", "b" * 45)
        assert backend.used_bytes() == 92


class TestFileBackend:
    """Tests for FileKeyValueStore."""

    def test_values_live_in_one_file_per_key(self, tmp_path):
        backend = FileKeyValueStore(tmp_path / "data")
        backend.set_item("budget-tracker-debts", "[]")

        assert (tmp_path / "data" / "budget-tracker-debts.json").read_text() == "[]"
        assert backend.get_item("budget-tracker-debts") == "[]"

    def test_keys_are_sorted_and_skip_temp_files(self, tmp_path):
        backend = FileKeyValueStore(tmp_path)
        backend.set_item("b", "1")
        backend.set_item("a", "2")
        (tmp_path / ".b.123.tmp").write_text("x")

        assert list(backend.keys()) == ["a", "b"]

    def test_missing_directory_reads_empty(self, tmp_path):
        backend = FileKeyValueStore(tmp_path / "absent")
        assert backend.get_item("k") is None
        assert list(backend.keys()) == []

    def test_remove_is_idempotent(self, tmp_path):
        backend = FileKeyValueStore(tmp_path)
        backend.set_item("k", "v")
        backend.remove_item("k")
        backend.remove_item("k")
        assert backend.get_item("k") is None

    def test_rejects_path_like_keys(self, tmp_path):
        backend = FileKeyValueStore(tmp_path)
        with pytest.raises(StorageError):
            backend.set_item("../escape", "v")

    def test_quota_applies(self, tmp_path):
        backend = FileKeyValueStore(tmp_path, quota_bytes=1024)
        with pytest.raises(QuotaExceededError):
            backend.set_item("k", "x" * 600)
        assert backend.get_item("k") is None

    def test_store_survives_reopen(self, tmp_path):
        transaction = create_transaction(amount=42, category_id="food")
        FinanceStore(FileKeyValueStore(tmp_path)).transactions.add(transaction)

        reopened = FinanceStore(FileKeyValueStore(tmp_path))
        assert [t.to_storage() for t in reopened.transactions.get_all()] == [
            transaction.to_storage()
        ]


class TestCollectionRepository:
    """Tests for whole-collection CRUD."""

    def test_absent_collection_is_empty(self, store):
        assert store.transactions.get_all() == []

    def test_save_then_get_all_round_trips(self, store):
        items = [create_transaction(amount=1), create_transaction(amount=2)]
        store.transactions.save(items)

        loaded = store.transactions.get_all()
        assert all(isinstance(item, Transaction) for item in loaded)
        assert [t.to_storage() for t in loaded] == [t.to_storage() for t in items]

    def test_stored_layout_is_camel_case_array(self, store):
        store.transactions.add(create_transaction(category_id="food"))
        raw = json.loads(store.backend.get_item("budget-tracker-transactions"))
        assert isinstance(raw, list)
        assert raw[0]["categoryId"] == "food"

    def test_save_accepts_mappings(self, store):
        store.transactions.save([{"id": "t1", "amount": 5}])
        assert store.transactions.get_by_id("t1").amount == 5

    def test_corrupt_value_reads_empty_and_is_audited(self, store, audit):
        store.backend.set_item("budget-tracker-transactions", "{not json")
        assert store.transactions.get_all() == []
        assert AuditEventType.PARSE_FAILED in audit.event_types

    def test_non_array_reads_empty(self, store):
        store.backend.set_item("budget-tracker-transactions", '{"a": 1}')
        assert store.transactions.get_all() == []

    def test_get_by_id_and_require(self, store):
        transaction = store.transactions.add(create_transaction(amount=3))
        assert store.transactions.get_by_id(transaction.id).amount == 3
        assert store.transactions.get_by_id("missing") is None
        with pytest.raises(NotFoundError):
            store.transactions.require("missing")

    def test_add_existing_id_replaces_in_place(self, store):
        first = store.transactions.add(create_transaction(id="t1", amount=1))
        store.transactions.add(create_transaction(id="t2", amount=2))
        store.transactions.add(first.model_copy(update={"amount": 10}))

        loaded = store.transactions.get_all()
        assert [t.id for t in loaded] == ["t1", "t2"]
        assert loaded[0].amount == 10

    def test_update_merges_and_restamps(self, store, monkeypatch):
        original = store.transactions.add(create_transaction(amount=1, description="x"))
        monkeypatch.setattr(
            "budget_tracker.storage.repository.now_ms", lambda: 9_999_999_999_999
        )

        updated = store.transactions.update(original.id, {"categoryId": "food"}, amount=7)

        assert updated.id == original.id
        assert updated.amount == 7
        assert updated.category_id == "food"
        assert updated.description == "x"
        assert updated.created_at == original.created_at
        assert updated.updated_at == 9_999_999_999_999
        assert store.transactions.get_by_id(original.id).amount == 7

    def test_update_cannot_change_id(self, store):
        original = store.transactions.add(create_transaction())
        updated = store.transactions.update(original.id, id="other")
        assert updated.id == original.id

    def test_update_missing_returns_none(self, store):
        assert store.transactions.update("missing", amount=1) is None

    def test_delete(self, store):
        transaction = store.transactions.add(create_transaction())
        assert store.transactions.delete(transaction.id) is True
        assert store.transactions.delete(transaction.id) is False
        assert store.transactions.get_all() == []

    def test_clear_is_idempotent(self, store):
        store.transactions.add(create_transaction())
        store.transactions.clear()
        store.transactions.clear()
        assert store.transactions.get_all() == []
        assert store.backend.get_item("budget-tracker-transactions") is None

    def test_deleting_category_leaves_dangling_reference(self, store):
        category = store.categories.add(create_category(name="Food"))
        transaction = store.transactions.add(create_transaction(category_id=category.id))

        store.categories.delete(category.id)

        kept = store.transactions.get_by_id(transaction.id)
        assert kept.category_id == category.id
        ref = resolve_category(store.categories.get_all(), kept.category_id)
        assert ref.name == "Unknown"
        assert ref.exists is False

    def test_deleting_debt_keeps_repayments(self, store):
        debt = store.debts.add(create_debt(amount=10, person_name="Sam"))
        store.repayments.add(create_repayment(debt_id=debt.id, amount=5))
        store.debts.delete(debt.id)
        assert len(store.repayments.get_all()) == 1

    def test_quota_exceeded_propagates_and_keeps_data(self, audit):
        store = FinanceStore(MemoryKeyValueStore(quota_bytes=200), audit=audit)
        store.transactions.save([])

        with pytest.raises(QuotaExceededError):
            store.transactions.add(create_transaction(amount=1, description="groceries"))

        assert store.transactions.get_all() == []
        assert AuditEventType.QUOTA_EXCEEDED in audit.event_types

    def test_writes_are_audited(self, store, audit):
        transaction = store.transactions.add(create_transaction())
        store.transactions.delete(transaction.id)
        assert AuditEventType.ITEM_ADDED in audit.event_types
        assert AuditEventType.ITEM_DELETED in audit.event_types


class TestSettingsRepository:
    """Tests for the settings singleton."""

    def test_absent_settings_are_defaults(self, store):
        settings = store.settings.get()
        assert settings.currency == "USD"
        assert store.settings.get_all() == [settings]

    def test_update_persists(self, store):
        store.settings.update(theme="dark")
        store.settings.update({"currency": "EUR"})
        settings = store.settings.get()
        assert settings.theme == "dark"
        assert settings.currency == "EUR"

    def test_nested_update_keeps_other_spike_fields(self, store):
        store.settings.update(spike_notifications={"threshold": 75})
        spike = store.settings.get().spike_notifications
        assert spike.threshold == 75
        assert spike.enabled is True
        assert spike.period == 30

    @pytest.mark.parametrize("version", [0, -3, "two", None])
    def test_out_of_range_schema_version_is_upgraded(self, store, version):
        store.backend.set_item(
            "budget-tracker-settings",
            json.dumps({"schemaVersion": version, "currency": "EUR"}),
        )
        settings = store.settings.get()
        assert settings.currency == "EUR"
        assert settings.schema_version == CURRENT_SCHEMA_VERSION

    def test_legacy_stored_settings_are_upgraded(self, store):
        store.backend.set_item(
            "budget-tracker-settings",
            json.dumps({"currency": "GBP", "mongoDbUrl": "http://remote"}),
        )
        settings = store.settings.get()
        assert settings.currency == "GBP"
        assert settings.remote_store_url == "http://remote"
        assert settings.theme == "system"

    def test_corrupt_settings_read_as_defaults(self, store, audit):
        store.backend.set_item("budget-tracker-settings", "nope")
        assert store.settings.get().currency == "USD"
        assert AuditEventType.PARSE_FAILED in audit.event_types

    def test_clear(self, store):
        store.settings.update(theme="dark")
        store.settings.clear()
        assert store.settings.get().theme == "system"


class TestFinanceStore:
    """Tests for cross-collection operations."""

    def test_repository_lookup(self, store):
        assert store.repository("debts") is store.debts
        with pytest.raises(KeyError):
            store.repository("settings")

    def test_has_existing_data(self, store):
        assert store.has_existing_data() is False
        store.transactions.save([])
        assert store.has_existing_data() is False
        store.transactions.add(create_transaction())
        assert store.has_existing_data() is True

    def test_clear_all(self, store, audit):
        store.transactions.add(create_transaction())
        store.settings.update(theme="dark")

        store.clear_all()

        assert store.has_existing_data() is False
        assert list(store.backend.keys()) == []
        assert AuditEventType.ALL_DATA_CLEARED in audit.event_types

    def test_storage_info(self):
        store = FinanceStore(MemoryKeyValueStore(quota_bytes=1000))
        store.categories.save([])

        info = store.storage_info()
        assert info.used == 54
        assert info.total == 1000
        assert info.percentage == pytest.approx(5.4)

    def test_from_settings_memory_backend(self):
        store = FinanceStore.from_settings(StorageSettings(backend="memory", key_prefix="bt-"))
        assert isinstance(store.backend, MemoryKeyValueStore)
        assert store.key_for("debts") == "bt-debts"

    def test_export_filename(self):
        assert FinanceStore.export_filename(datetime(2025, 3, 4)) == (
            "budget-tracker-export-2025-03-04.json"
        )


class TestExportImport:
    """Tests for bulk export/import."""

    def _populate(self, store):
        category = store.categories.add(create_category(name="Food"))
        store.transactions.add(create_transaction(category_id=category.id, amount=9))
        debt = store.debts.add(create_debt(amount=20, person_name="Sam"))
        store.repayments.add(create_repayment(debt_id=debt.id, amount=5))
        store.settings.update(currency="EUR")

    def test_export_shape(self, store):
        self._populate(store)
        data = store.export_data()

        assert set(data) == {"categories", "transactions", "budgets", "debts", "settings"}
        assert data["transactions"][0]["amount"] == 9
        assert data["settings"]["currency"] == "EUR"

    def test_extended_export_includes_repayments(self, store):
        self._populate(store)
        data = store.export_data(include_extended=True)
        assert len(data["repayments"]) == 1
        assert data["notifications"] == []

    def test_export_import_round_trip(self, store):
        self._populate(store)
        text = store.export_json(include_extended=True)

        target = FinanceStore(MemoryKeyValueStore())
        counts = target.import_json(text)

        assert counts["transactions"] == 1
        assert counts["repayments"] == 1
        assert target.transactions.get_all()[0].to_storage() == (
            store.transactions.get_all()[0].to_storage()
        )
        assert target.settings.get().currency == "EUR"

    def test_import_overwrites_existing(self, store):
        store.transactions.add(create_transaction(amount=1))
        store.import_data({"categories": [], "transactions": [], "budgets": [], "debts": []})
        assert store.transactions.get_all() == []

    def test_import_missing_collection_rejected(self, store, audit):
        store.transactions.add(create_transaction(amount=1))

        with pytest.raises(ImportFormatError, match="debts"):
            store.import_data({"categories": [], "transactions": [], "budgets": []})

        assert len(store.transactions.get_all()) == 1
        assert AuditEventType.IMPORT_REJECTED in audit.event_types

    def test_import_bad_record_writes_nothing(self, store):
        store.categories.add(create_category(name="Keep"))

        with pytest.raises(ImportFormatError):
            store.import_data({
                "categories": [],
                "transactions": [{"amount": "lots"}],
                "budgets": [],
                "debts": [],
            })

        assert [c.name for c in store.categories.get_all()] == ["Keep"]

    def test_import_over_quota_writes_nothing(self, audit):
        store = FinanceStore(MemoryKeyValueStore(quota_bytes=4000), audit=audit)
        store.categories.save([create_category(name="Old")])

        with pytest.raises(QuotaExceededError):
            store.import_data({
                "categories": [create_category(name="New").to_storage()],
                "transactions": [
                    create_transaction(amount=i, description="imported").to_storage()
                    for i in range(40)
                ],
                "budgets": [],
                "debts": [],
            })

        assert [c.name for c in store.categories.get_all()] == ["Old"]
        assert store.backend.get_item("budget-tracker-transactions") is None
        assert AuditEventType.QUOTA_EXCEEDED in audit.event_types

    def test_import_backend_failure_restores_previous_values(self, audit):
        class FailingTransactionsBackend(MemoryKeyValueStore):
            def set_item(self, key, value):
                if key.endswith("transactions"):
                    raise StorageError("disk error")
                super().set_item(key, value)

        store = FinanceStore(FailingTransactionsBackend(), audit=audit)
        store.categories.save([create_category(name="Old")])
        before = store.backend.get_item("budget-tracker-categories")

        with pytest.raises(StorageError, match="disk error"):
            store.import_data({
                "categories": [create_category(name="New").to_storage()],
                "transactions": [],
                "budgets": [],
                "debts": [],
            })

        assert store.backend.get_item("budget-tracker-categories") == before
        assert AuditEventType.SAVE_FAILED in audit.event_types

    def test_import_invalid_json_rejected(self, store):
        with pytest.raises(ImportFormatError):
            store.import_json("{oops")

    def test_import_non_array_rejected(self, store):
        with pytest.raises(ImportFormatError):
            store.import_data({"categories": {}, "transactions": [], "budgets": [], "debts": []})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
