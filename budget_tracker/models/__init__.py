"""
Data Models Package

Exports all models for easy importing.
"""

from budget_tracker.models.entities import (
    Budget,
    BudgetPeriod,
    Category,
    Debt,
    DebtStatus,
    DebtType,
    EntityModel,
    Notification,
    NotificationType,
    Repayment,
    Subcategory,
    Transaction,
    TransactionType,
    create_budget,
    create_category,
    create_debt,
    create_notification,
    create_repayment,
    create_subcategory,
    create_transaction,
    generate_id,
    now_ms,
)
from budget_tracker.models.preferences import (
    CURRENT_SCHEMA_VERSION,
    SpikeNotificationSettings,
    UserSettings,
)
from budget_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from budget_tracker.models.insights import (
    BalancePoint,
    BudgetProgress,
    CategoryRef,
    CategoryTotal,
    CategoryTrends,
    FinancialSummary,
    MonthlyTotals,
)
from budget_tracker.models.validation import (
    EntityValidationError,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Entities
    "Budget",
    "BudgetPeriod",
    "Category",
    "Debt",
    "DebtStatus",
    "DebtType",
    "EntityModel",
    "Notification",
    "NotificationType",
    "Repayment",
    "Subcategory",
    "Transaction",
    "TransactionType",
    # Factories
    "create_budget",
    "create_category",
    "create_debt",
    "create_notification",
    "create_repayment",
    "create_subcategory",
    "create_transaction",
    "generate_id",
    "now_ms",
    # Settings
    "CURRENT_SCHEMA_VERSION",
    "SpikeNotificationSettings",
    "UserSettings",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Aggregation results
    "BalancePoint",
    "BudgetProgress",
    "CategoryRef",
    "CategoryTotal",
    "CategoryTrends",
    "FinancialSummary",
    "MonthlyTotals",
    # Validation
    "EntityValidationError",
    "ValidationIssue",
    "ValidationResult",
]
