"""
Entity Validator

DESIGN DECISION: The entity factories never reject business-invalid
values (a zero amount, an empty name). Those checks live here and are
run by the caller before anything touches the store.

Checks are split by severity:
- error: blocks the save (empty required field, non-positive amount,
  missing category selection)
- warning: shown but not blocking (inconsistent flags, reversed dates)

IMPORTANT: Validation NEVER silently fixes issues.
"""

from collections.abc import Iterable
from typing import Optional

from budget_tracker.models.entities import (
    Budget,
    Category,
    Debt,
    Repayment,
    Subcategory,
    Transaction,
)
from budget_tracker.models.validation import ValidationIssue, ValidationResult


class EntityValidator:
    """
    Validates records before they are saved.

    If categories/debts are supplied, references are also checked for
    existence (as warnings: dangling references are legal).
    """

    def __init__(
        self,
        categories: Optional[Iterable[Category]] = None,
        debts: Optional[Iterable[Debt]] = None,
    ):
        self._category_ids = (
            {c.id for c in categories} if categories is not None else None
        )
        self._debt_ids = {d.id for d in debts} if debts is not None else None

    def validate_transaction(self, transaction: Transaction) -> ValidationResult:
        issues = []
        _require_positive(issues, "amount", transaction.amount)

        if not transaction.category_id:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="missing",
                message="Please select a category",
                severity="error",
            ))
        else:
            self._check_category_exists(issues, transaction.category_id)

        return ValidationResult(
            entity_type="transaction", entity_id=transaction.id, issues=issues
        )

    def validate_category(self, category: Category) -> ValidationResult:
        issues = []
        _require_text(issues, "name", category.name, "Category name")

        if category.income_only and category.expense_only:
            issues.append(ValidationIssue(
                field="income_only",
                issue_type="inconsistent",
                message="A category cannot be both income-only and expense-only",
                severity="warning",
            ))

        for sub in category.subcategories:
            issues.extend(self.validate_subcategory(sub, parent_id=category.id).issues)

        return ValidationResult(entity_type="category", entity_id=category.id, issues=issues)

    def validate_subcategory(
        self,
        subcategory: Subcategory,
        parent_id: Optional[str] = None,
    ) -> ValidationResult:
        issues = []
        _require_text(issues, "name", subcategory.name, "Subcategory name")

        if parent_id is not None and subcategory.parent_category_id != parent_id:
            issues.append(ValidationIssue(
                field="parent_category_id",
                issue_type="inconsistent",
                message=f"Subcategory '{subcategory.name}' points at a different parent",
                severity="warning",
            ))

        return ValidationResult(
            entity_type="subcategory", entity_id=subcategory.id, issues=issues
        )

    def validate_budget(self, budget: Budget) -> ValidationResult:
        issues = []
        _require_positive(issues, "amount", budget.amount)

        if not budget.category_id:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="missing",
                message="Please select a category",
                severity="error",
            ))
        else:
            self._check_category_exists(issues, budget.category_id)

        if budget.end_date is not None and budget.end_date < budget.start_date:
            issues.append(ValidationIssue(
                field="end_date",
                issue_type="inconsistent",
                message="Budget end date is before its start date",
                severity="warning",
            ))

        return ValidationResult(entity_type="budget", entity_id=budget.id, issues=issues)

    def validate_debt(self, debt: Debt) -> ValidationResult:
        issues = []
        _require_positive(issues, "amount", debt.amount)
        _require_text(issues, "person_name", debt.person_name, "Person name")

        if debt.due_date < debt.date:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="inconsistent",
                message="Due date is before the debt date",
                severity="warning",
            ))

        return ValidationResult(entity_type="debt", entity_id=debt.id, issues=issues)

    def validate_repayment(self, repayment: Repayment) -> ValidationResult:
        issues = []
        _require_positive(issues, "amount", repayment.amount)

        if not repayment.debt_id:
            issues.append(ValidationIssue(
                field="debt_id",
                issue_type="missing",
                message="Repayment must belong to a debt",
                severity="error",
            ))
        elif self._debt_ids is not None and repayment.debt_id not in self._debt_ids:
            issues.append(ValidationIssue(
                field="debt_id",
                issue_type="dangling_reference",
                message="The referenced debt no longer exists",
                severity="warning",
            ))

        return ValidationResult(
            entity_type="repayment", entity_id=repayment.id, issues=issues
        )

    def _check_category_exists(self, issues: list[ValidationIssue], category_id: str) -> None:
        if self._category_ids is not None and category_id not in self._category_ids:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="dangling_reference",
                message="The selected category no longer exists",
                severity="warning",
            ))


def _require_positive(issues: list[ValidationIssue], field: str, value: float) -> None:
    if value <= 0:
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message="Amount must be greater than zero",
            severity="error",
        ))


def _require_text(issues: list[ValidationIssue], field: str, value: str, label: str) -> None:
    if not value or not value.strip():
        issues.append(ValidationIssue(
            field=field,
            issue_type="missing",
            message=f"{label} is required",
            severity="error",
        ))
