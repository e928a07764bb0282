"""
Audit Models for Budget Tracker

Every write to the store, every recovered read failure and every
remote sync attempt produces an AuditEvent. Events are emitted to the
structured log; they are not persisted alongside user data.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Collection writes
    COLLECTION_SAVED = "collection_saved"
    ITEM_ADDED = "item_added"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"
    COLLECTION_CLEARED = "collection_cleared"
    SETTINGS_SAVED = "settings_saved"

    # Failures
    PARSE_FAILED = "parse_failed"
    QUOTA_EXCEEDED = "quota_exceeded"
    SAVE_FAILED = "save_failed"

    # Bulk operations
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    IMPORT_REJECTED = "import_rejected"
    ALL_DATA_CLEARED = "all_data_cleared"

    # Remote store
    REMOTE_SYNC_SUCCEEDED = "remote_sync_succeeded"
    REMOTE_SYNC_FAILED = "remote_sync_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    collection: Optional[str] = Field(
        default=None,
        description="Storage key the event relates to"
    )
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.collection_saved("budget-tracker-budgets", 3)
        event = AuditEventBuilder.quota_exceeded("budget-tracker-transactions", str(exc))
    """

    @staticmethod
    def collection_saved(collection: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_SAVED,
            severity=AuditSeverity.DEBUG,
            collection=collection,
            description=f"Saved {count} records",
            details={"count": count},
        )

    @staticmethod
    def item_changed(
        event_type: AuditEventType,
        collection: str,
        entity_id: str,
    ) -> AuditEvent:
        verb = {
            AuditEventType.ITEM_ADDED: "added",
            AuditEventType.ITEM_UPDATED: "updated",
            AuditEventType.ITEM_DELETED: "deleted",
        }[event_type]
        return AuditEvent(
            event_type=event_type,
            collection=collection,
            entity_id=entity_id,
            description=f"Record {verb}",
        )

    @staticmethod
    def collection_cleared(collection: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_CLEARED,
            collection=collection,
            description="Collection cleared",
        )

    @staticmethod
    def settings_saved(collection: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_SAVED,
            collection=collection,
            description="Settings saved",
        )

    @staticmethod
    def parse_failed(collection: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            description="Stored value could not be parsed; treating as empty",
            error_message=error_message,
        )

    @staticmethod
    def quota_exceeded(collection: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUOTA_EXCEEDED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            description="Storage quota exceeded",
            error_message=error_message,
        )

    @staticmethod
    def save_failed(collection: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            description="Failed to write collection",
            error_message=error_message,
        )

    @staticmethod
    def data_exported(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            description="Data exported",
            details={"counts": counts},
        )

    @staticmethod
    def data_imported(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            description="Data imported",
            details={"counts": counts},
        )

    @staticmethod
    def import_rejected(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            description="Import rejected",
            error_message=reason,
        )

    @staticmethod
    def all_data_cleared(keys: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALL_DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            description="All stored data cleared",
            details={"keys": keys},
        )

    @staticmethod
    def remote_sync_succeeded(collection: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_SYNC_SUCCEEDED,
            collection=collection,
            description="Collection mirrored to remote store",
            details={"count": count},
        )

    @staticmethod
    def remote_sync_failed(collection: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_SYNC_FAILED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            description="Remote sync failed; local store remains authoritative",
            error_message=error_message,
        )
