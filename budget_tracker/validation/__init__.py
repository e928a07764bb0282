"""Validation package."""

from budget_tracker.models.validation import (
    EntityValidationError,
    ValidationIssue,
    ValidationResult,
)
from budget_tracker.validation.validator import EntityValidator

__all__ = [
    "EntityValidationError",
    "EntityValidator",
    "ValidationIssue",
    "ValidationResult",
]
