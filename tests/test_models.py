"""
Tests for Budget Tracker models

Test strategy:
1. Factories fill every omitted field with its default
2. Records serialize to camelCase and accept both key styles
3. Stored settings are upgraded and backfilled on read
"""

import pytest
from datetime import datetime, timezone

from pydantic import ValidationError

from budget_tracker.models import (
    CURRENT_SCHEMA_VERSION,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BudgetPeriod,
    DebtStatus,
    DebtType,
    NotificationType,
    Transaction,
    TransactionType,
    UserSettings,
    create_budget,
    create_category,
    create_debt,
    create_notification,
    create_repayment,
    create_subcategory,
    create_transaction,
)
from budget_tracker.models.entities import DAY_MS, DEFAULT_COLOR
from budget_tracker.models.validation import (
    EntityValidationError,
    ValidationIssue,
    ValidationResult,
)


class TestEntityFactories:
    """Tests for the create_* factories."""

    def test_transaction_defaults(self):
        transaction = create_transaction()
        assert transaction.id
        assert transaction.amount == 0
        assert transaction.type == TransactionType.EXPENSE
        assert transaction.category_id == ""
        assert transaction.subcategory_id is None
        assert transaction.tags == []
        assert transaction.created_at == transaction.updated_at

    def test_ids_are_unique(self):
        assert create_transaction().id != create_transaction().id

    def test_accepts_camel_case_mapping_and_keywords(self):
        transaction = create_transaction({"categoryId": "food"}, amount=12.5)
        assert transaction.category_id == "food"
        assert transaction.amount == 12.5

    def test_none_counts_as_omitted(self):
        transaction = create_transaction(description=None, amount=3)
        assert transaction.description == ""

    def test_explicit_id_is_kept(self):
        assert create_category(id="cat-1", name="Food").id == "cat-1"

    def test_datetime_is_stored_as_epoch_ms(self):
        transaction = create_transaction(date=datetime(2025, 1, 5, tzinfo=timezone.utc))
        assert transaction.date == 1736035200000

    def test_category_defaults(self):
        category = create_category(name="Food")
        assert category.color == DEFAULT_COLOR
        assert category.icon == "default"
        assert category.income_only is False
        assert category.expense_only is False
        assert category.subcategories == []

    def test_subcategory_parent(self):
        sub = create_subcategory("cat-1", name="Coffee")
        assert sub.parent_category_id == "cat-1"
        assert sub.name == "Coffee"

    def test_find_subcategory(self):
        sub = create_subcategory("cat-1", name="Coffee")
        category = create_category(id="cat-1", subcategories=[sub])
        assert category.find_subcategory(sub.id) == sub
        assert category.find_subcategory("missing") is None

    def test_budget_defaults(self):
        budget = create_budget(category_id="food", amount=100)
        assert budget.period == BudgetPeriod.MONTHLY
        assert budget.end_date is None
        assert budget.subcategory_id is None

    def test_debt_defaults_due_in_thirty_days(self):
        debt = create_debt(amount=50, person_name="Sam")
        assert debt.type == DebtType.BORROWED
        assert debt.status == DebtStatus.ACTIVE
        assert debt.due_date - debt.date == 30 * DAY_MS
        assert debt.interest is None

    def test_repayment_and_notification_defaults(self):
        repayment = create_repayment(debt_id="d1", amount=10)
        assert repayment.note is None

        notification = create_notification(message="hi")
        assert notification.type == NotificationType.SPIKE
        assert notification.read is False
        assert notification.related_id is None

    def test_signed_amount(self):
        assert create_transaction(amount=10, type="income").signed_amount == 10
        assert create_transaction(amount=10).signed_amount == -10


class TestSerialization:
    """Tests for the storage layout of records."""

    def test_to_storage_uses_camel_case(self):
        data = create_transaction(category_id="food", amount=1).to_storage()
        assert data["categoryId"] == "food"
        assert "createdAt" in data
        assert "updatedAt" in data
        assert "category_id" not in data
        assert data["type"] == "expense"

    def test_unknown_keys_survive_round_trip(self):
        transaction = Transaction.model_validate({"id": "t1", "legacyField": 1})
        assert transaction.to_storage()["legacyField"] == 1

    def test_invalid_enum_rejected(self):
        with pytest.raises(ValidationError):
            create_transaction(type="transfer")


class TestUserSettings:
    """Tests for the versioned settings singleton."""

    def test_defaults(self):
        settings = UserSettings.defaults()
        assert settings.schema_version == CURRENT_SCHEMA_VERSION
        assert settings.currency == "USD"
        assert settings.theme == "system"
        assert settings.use_cloud_storage is False
        assert settings.spike_notifications.enabled is True
        assert settings.spike_notifications.threshold == 50
        assert settings.spike_notifications.period == 30
        assert settings.remote_enabled is False

    def test_upgrade_moves_legacy_remote_url(self):
        settings = UserSettings.upgrade({"mongoDbUrl": "http://remote", "currency": "EUR"})
        assert settings.remote_store_url == "http://remote"
        assert settings.currency == "EUR"
        assert settings.schema_version == CURRENT_SCHEMA_VERSION
        assert "mongoDbUrl" not in settings.to_storage()

    def test_upgrade_backfills_nested_defaults(self):
        settings = UserSettings.upgrade({"spikeNotifications": {"threshold": 80}})
        assert settings.spike_notifications.threshold == 80
        assert settings.spike_notifications.enabled is True
        assert settings.spike_notifications.period == 30

    def test_upgrade_non_mapping_gives_defaults(self):
        assert UserSettings.upgrade("garbage") == UserSettings.defaults()
        assert UserSettings.upgrade(None) == UserSettings.defaults()

    def test_merged_with_keeps_other_fields(self):
        settings = UserSettings.upgrade({"currency": "EUR"})
        merged = settings.merged_with({"theme": "dark"})
        assert merged.theme == "dark"
        assert merged.currency == "EUR"

    def test_merged_with_nested_snake_case(self):
        merged = UserSettings.defaults().merged_with(
            {"spike_notifications": {"muted_categories": ["food"]}}
        )
        assert merged.spike_notifications.muted_categories == ["food"]
        assert merged.spike_notifications.threshold == 50

    def test_remote_enabled_requires_url(self):
        assert UserSettings(use_cloud_storage=True).remote_enabled is False
        assert UserSettings(
            use_cloud_storage=True, remote_store_url="http://remote"
        ).remote_enabled is True

    def test_invalid_theme_rejected(self):
        with pytest.raises(ValidationError):
            UserSettings(theme="neon")


class TestAuditModels:
    """Tests for audit event models."""

    def test_parse_failed_is_warning(self):
        event = AuditEventBuilder.parse_failed("budget-tracker-debts", "bad json")
        assert event.event_type == AuditEventType.PARSE_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.collection == "budget-tracker-debts"

    def test_quota_exceeded_is_error(self):
        event = AuditEventBuilder.quota_exceeded("budget-tracker-debts", "full")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "full"

    def test_item_changed_carries_entity(self):
        event = AuditEventBuilder.item_changed(
            AuditEventType.ITEM_ADDED, "budget-tracker-transactions", "t1"
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "item_added"
        assert log_dict["entity_id"] == "t1"


class TestValidationResult:
    """Tests for ValidationResult helpers."""

    def test_errors_and_warnings(self):
        result = ValidationResult(
            entity_type="transaction",
            issues=[
                ValidationIssue(field="amount", issue_type="invalid_value",
                                message="Amount must be greater than zero", severity="error"),
                ValidationIssue(field="category_id", issue_type="dangling_reference",
                                message="gone", severity="warning"),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1
        assert not result.is_valid
        assert result.warnings == ["gone"]

    def test_raise_for_errors(self):
        result = ValidationResult(
            entity_type="budget",
            issues=[ValidationIssue(field="amount", issue_type="invalid_value",
                                    message="Amount must be greater than zero",
                                    severity="error")],
        )
        with pytest.raises(EntityValidationError, match="Invalid budget"):
            result.raise_for_errors()

    def test_severity_pattern(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
