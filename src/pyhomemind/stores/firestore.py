"""Cloud Firestore document store over the REST API.

Endpoints:
  - GET   {base}/projects/{project}/databases/{db}/documents/{path}
  - PATCH {base}/projects/{project}/databases/{db}/documents/{path}?updateMask.fieldPaths=...

A ``PATCH`` with an update mask only touches the listed fields and creates
the document when it does not exist, which is exactly a merge write. The
REST API has no listen stream, so change subscriptions poll the document
and emit a snapshot whenever its ``updateTime`` changes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pyhomemind._constants import FIRESTORE_URL
from pyhomemind._redact import redact_for_log
from pyhomemind._transport import Transport
from pyhomemind.config import HomeMindConfig
from pyhomemind.exceptions import HomeMindReadError, HomeMindTransportError
from pyhomemind.state.events import DocumentSnapshot
from pyhomemind.stores._codec import decode_fields, encode_fields
from pyhomemind.stores.base import DocumentPath, ErrorHandler, SnapshotHandler

_logger = logging.getLogger(__name__)

TokenSource = Callable[[], Awaitable[str | None]]


class _PollingSubscription:
    """One polling task; errors end it after a single ``on_error`` call."""

    def __init__(
        self,
        store: FirestoreDocumentStore,
        path: DocumentPath,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
        interval: float,
    ) -> None:
        self._store = store
        self._path = path
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._interval = interval
        self._task: asyncio.Task[None] | None = asyncio.get_running_loop().create_task(
            self._run(), name=f"pyhomemind-poll:{path}"
        )

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def close(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self) -> None:
        last_revision: object = object()
        while True:
            try:
                snapshot = await self._store.get(self._path)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001 - handed to the subscriber
                _logger.debug("Polling %s failed", self._path, exc_info=True)
                self._task = None
                self._on_error(exc)
                return

            revision = snapshot.update_time if snapshot.exists else None
            if revision != last_revision:
                last_revision = revision
                self._on_snapshot(snapshot)
            await asyncio.sleep(self._interval)


class FirestoreDocumentStore:
    """Document store backed by Cloud Firestore."""

    def __init__(
        self,
        config: HomeMindConfig,
        transport: Transport,
        token_source: TokenSource,
        *,
        base_url: str = FIRESTORE_URL,
    ) -> None:
        self._config = config
        self._transport = transport
        self._token_source = token_source
        self._root = f"{base_url}/projects/{config.project_id}/databases/{config.database}/documents"

    def document_url(self, path: DocumentPath) -> str:
        return f"{self._root}/{path}"

    async def get(self, path: DocumentPath) -> DocumentSnapshot:
        token = await self._token_source()
        try:
            response = await self._transport.request("GET", self.document_url(path), bearer=token)
        except HomeMindTransportError as exc:
            if exc.status_code == 404:
                return DocumentSnapshot(path=str(path), exists=False)
            raise
        fields = response.get("fields")
        try:
            data = decode_fields(fields) if isinstance(fields, dict) else {}
        except (ValueError, TypeError, KeyError) as exc:
            raise HomeMindReadError(f"Undecodable document at {path}: {exc}") from exc
        update_time = response.get("updateTime")
        return DocumentSnapshot(
            path=str(path),
            data=data,
            update_time=update_time if isinstance(update_time, str) else None,
        )

    async def merge_write(self, path: DocumentPath, data: Mapping[str, Any]) -> None:
        if not data:
            return
        token = await self._token_source()
        params = [("updateMask.fieldPaths", key) for key in data]
        body = {"fields": encode_fields(data)}
        _logger.debug("PATCH %s keys=%s data=%s", path, sorted(data), redact_for_log(data))
        await self._transport.request("PATCH", self.document_url(path), params=params, json_body=body, bearer=token)

    def subscribe(
        self,
        path: DocumentPath,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> _PollingSubscription:
        return _PollingSubscription(self, path, on_snapshot, on_error, self._config.poll_interval)

