"""Process-local document store with push change notifications."""

from __future__ import annotations

import asyncio
import copy
import itertools
import logging
from collections.abc import Mapping
from typing import Any

from pyhomemind.state.events import DocumentSnapshot
from pyhomemind.stores.base import DocumentPath, ErrorHandler, SnapshotHandler

_logger = logging.getLogger(__name__)


class _MemorySubscription:
    def __init__(
        self,
        store: InMemoryDocumentStore,
        path: DocumentPath,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> None:
        self._store = store
        self.path = path
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if not self._active:
            return
        self._active = False
        self._store._remove(self)

    def fail(self, error: BaseException) -> None:
        if not self._active:
            return
        self.close()
        self.on_error(error)

    def deliver(self, snapshot: DocumentSnapshot) -> None:
        # Delivery is scheduled on the loop; the subscriber may have closed meanwhile.
        if self._active:
            self.on_snapshot(snapshot)


class InMemoryDocumentStore:
    """Documents kept in a dict keyed by path string.

    Merge writes replace the provided top-level keys only. Subscribers get
    the current snapshot on the next loop iteration after subscribing and
    one snapshot per write afterwards.
    """

    def __init__(self, initial: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {
            key: copy.deepcopy(dict(value)) for key, value in (initial or {}).items()
        }
        self._revisions: dict[str, int] = {}
        self._counter = itertools.count(1)
        self._subscriptions: list[_MemorySubscription] = []

    def _snapshot(self, path: DocumentPath) -> DocumentSnapshot:
        key = str(path)
        data = self._documents.get(key)
        if data is None:
            return DocumentSnapshot(path=key, exists=False)
        revision = self._revisions.get(key, 0)
        return DocumentSnapshot(path=key, data=copy.deepcopy(data), update_time=str(revision))

    def _remove(self, subscription: _MemorySubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _notify(self, path: DocumentPath) -> None:
        loop = asyncio.get_running_loop()
        for subscription in list(self._subscriptions):
            if subscription.path == path:
                loop.call_soon(subscription.deliver, self._snapshot(path))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def peek(self, path: DocumentPath) -> dict[str, Any] | None:
        """Stored data for *path* (a copy), bypassing subscriptions."""
        data = self._documents.get(str(path))
        return copy.deepcopy(data) if data is not None else None

    async def get(self, path: DocumentPath) -> DocumentSnapshot:
        return self._snapshot(path)

    async def merge_write(self, path: DocumentPath, data: Mapping[str, Any]) -> None:
        key = str(path)
        document = self._documents.setdefault(key, {})
        document.update(copy.deepcopy(dict(data)))
        self._revisions[key] = next(self._counter)
        _logger.debug("Merged keys=%s into %s", sorted(data), key)
        self._notify(path)

    def subscribe(
        self,
        path: DocumentPath,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> _MemorySubscription:
        subscription = _MemorySubscription(self, path, on_snapshot, on_error)
        self._subscriptions.append(subscription)
        asyncio.get_running_loop().call_soon(subscription.deliver, self._snapshot(path))
        return subscription

    def fail_subscribers(self, path: DocumentPath, error: BaseException) -> None:
        """Terminate every subscription on *path* with *error*."""
        for subscription in list(self._subscriptions):
            if subscription.path == path:
                subscription.fail(error)
