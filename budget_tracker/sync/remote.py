"""
Remote Store Client

Optional HTTP mirror of the local collections. The remote service
exposes, per collection:

    GET    /{collection}
    GET    /{collection}/{id}
    POST   /{collection}
    PATCH  /{collection}/{id}
    DELETE /{collection}/{id}
    POST   /{collection}/sync      (full snapshot)
    GET    /ping                   (liveness)

DESIGN DECISION: The local store is always authoritative. Every remote
failure surfaces as RemoteUnavailableError, and RemoteSync turns those
into per-collection results instead of raising.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from budget_tracker.audit import AuditLogger
from budget_tracker.config import RemoteSettings, get_settings
from budget_tracker.models.audit import AuditEventBuilder
from budget_tracker.models.entities import EntityModel, now_ms
from budget_tracker.storage.store import COLLECTIONS, FinanceStore


class RemoteUnavailableError(Exception):
    """Any failure talking to the remote store."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _payload(item: EntityModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(item, EntityModel):
        return item.to_storage()
    return dict(item)


class RemoteStoreClient:
    """
    Client for one remote collection.

    Idempotent calls (reads, patch, delete, snapshot sync) are retried
    with exponential backoff; add() is sent once.
    """

    def __init__(
        self,
        base_url: str,
        collection: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff_seconds: float = 1.0,
    ):
        if not base_url:
            raise RemoteUnavailableError("Remote store URL not configured")

        remote = get_settings().remote
        self.base_url = base_url.rstrip("/")
        self.collection = collection
        self._session = session or requests.Session()
        self._timeout = timeout if timeout is not None else remote.timeout_seconds
        self._max_attempts = max_attempts if max_attempts is not None else remote.max_attempts
        self._backoff = backoff_seconds

    @property
    def collection_url(self) -> str:
        return f"{self.base_url}/{self.collection}"

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff, min=0, max=10),
            retry=retry_if_exception_type(RemoteUnavailableError),
            reraise=True,
        )

    def _request(
        self,
        method: str,
        url: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> Optional[requests.Response]:
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteUnavailableError(f"{method} {url} failed: {e}")

        if allow_not_found and response.status_code == 404:
            return None
        if not response.ok:
            raise RemoteUnavailableError(
                f"{method} {url} failed: {response.status_code} {response.reason}",
                status_code=response.status_code,
            )
        return response

    def _with_retry(self, method: str, url: str, **kwargs: Any) -> Optional[requests.Response]:
        return self._retrying()(self._request, method, url, **kwargs)

    @staticmethod
    def _json(response: Optional[requests.Response]) -> Any:
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteUnavailableError(f"Remote store returned invalid JSON: {e}")

    def get_all(self) -> list[dict[str, Any]]:
        return self._json(self._with_retry("GET", self.collection_url))

    def get_by_id(self, item_id: str) -> Optional[dict[str, Any]]:
        """Returns None when the remote store answers 404."""
        response = self._with_retry(
            "GET", f"{self.collection_url}/{item_id}", allow_not_found=True
        )
        return self._json(response)

    def add(self, item: EntityModel | Mapping[str, Any]) -> dict[str, Any]:
        response = self._request("POST", self.collection_url, json=_payload(item))
        return self._json(response)

    def update(self, item_id: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        body = {**changes, "updatedAt": now_ms()}
        response = self._with_retry("PATCH", f"{self.collection_url}/{item_id}", json=body)
        return self._json(response)

    def delete(self, item_id: str) -> None:
        self._with_retry("DELETE", f"{self.collection_url}/{item_id}")

    def sync_from_local(self, items: Iterable[EntityModel | Mapping[str, Any]]) -> None:
        """Push a full local snapshot of the collection."""
        body = [_payload(item) for item in items]
        self._with_retry("POST", f"{self.collection_url}/sync", json=body)


def test_connection(url: str, timeout: Optional[float] = None) -> bool:
    """Liveness check against {url}/ping. Never raises."""
    if timeout is None:
        timeout = get_settings().remote.timeout_seconds
    try:
        response = requests.get(
            f"{url.rstrip('/')}/ping",
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        return response.ok
    except requests.RequestException:
        return False


def create_remote_clients(
    base_url: str,
    session: Optional[requests.Session] = None,
    **client_options: Any,
) -> dict[str, RemoteStoreClient]:
    """One client per stored collection, sharing a session."""
    session = session or requests.Session()
    return {
        name: RemoteStoreClient(base_url, name, session=session, **client_options)
        for name in COLLECTIONS
    }


class RemoteSync:
    """
    Mirrors the local FinanceStore to the remote store.

    Does nothing unless the user enabled cloud storage and configured a
    URL. Failures are audited and reported, never raised.
    """

    def __init__(
        self,
        store: FinanceStore,
        session: Optional[requests.Session] = None,
        settings: Optional[RemoteSettings] = None,
        audit: Optional[AuditLogger] = None,
        **client_options: Any,
    ):
        self._store = store
        self._session = session
        self._settings = settings or get_settings().remote
        self._audit = audit or AuditLogger()
        self._client_options = client_options

    @property
    def enabled(self) -> bool:
        return self._store.settings.get().remote_enabled

    def configure(self, url: str) -> bool:
        """Save the remote URL in user settings and test it."""
        self._store.settings.update(remote_store_url=url)
        return self.check_connection()

    def check_connection(self) -> bool:
        url = self._store.settings.get().remote_store_url
        if not url:
            return False
        return test_connection(url, timeout=self._settings.timeout_seconds)

    def _clients(self) -> dict[str, RemoteStoreClient]:
        options = {
            "timeout": self._settings.timeout_seconds,
            "max_attempts": self._settings.max_attempts,
            **self._client_options,
        }
        return create_remote_clients(
            self._store.settings.get().remote_store_url or "",
            session=self._session,
            **options,
        )

    def push_all(self) -> dict[str, bool]:
        """
        Send every collection's full snapshot.

        Returns:
            {collection: succeeded}; empty when sync is disabled
        """
        if not self.enabled:
            return {}

        results = {}
        for name, client in self._clients().items():
            items = self._store.repository(name).get_all()
            try:
                client.sync_from_local(items)
            except RemoteUnavailableError as e:
                self._audit.log(AuditEventBuilder.remote_sync_failed(client.collection, str(e)))
                results[name] = False
            else:
                self._audit.log(
                    AuditEventBuilder.remote_sync_succeeded(client.collection, len(items))
                )
                results[name] = True
        return results
