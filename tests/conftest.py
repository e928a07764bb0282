"""Shared fixtures."""

from datetime import datetime, timezone

import pytest

from budget_tracker.audit import AuditLogger
from budget_tracker.storage import FinanceStore, MemoryKeyValueStore


class RecordingAuditLogger(AuditLogger):
    """Audit logger that keeps every event for assertions."""

    def __init__(self):
        super().__init__("budget_tracker.tests")
        self.events = []

    def log(self, event):
        self.events.append(event)
        super().log(event)

    @property
    def event_types(self):
        return [event.event_type for event in self.events]


def ts(year, month, day, hour=12):
    """Epoch milliseconds for a UTC date."""
    moment = datetime(year, month, day, hour, tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


@pytest.fixture
def audit():
    return RecordingAuditLogger()


@pytest.fixture
def store(audit):
    return FinanceStore(MemoryKeyValueStore(), audit=audit)
