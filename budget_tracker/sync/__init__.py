"""Optional remote store mirror."""

from budget_tracker.sync.remote import (
    RemoteStoreClient,
    RemoteSync,
    RemoteUnavailableError,
    create_remote_clients,
    test_connection,
)

__all__ = [
    "RemoteStoreClient",
    "RemoteSync",
    "RemoteUnavailableError",
    "create_remote_clients",
    "test_connection",
]
