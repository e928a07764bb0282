"""Audit logging package."""

from budget_tracker.audit.logger import AuditLogger, get_logger

__all__ = ["AuditLogger", "get_logger"]
