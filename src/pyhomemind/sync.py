"""Sync engine: the bridge between the local state cache and the remote document.

Remote to local: one subscription per session; every snapshot is upgraded
to the current schema and sparse-merged into the cache.

Local to remote: mutation handlers update the cache first and then call
:meth:`SyncEngine.persist`, which schedules a single merge write holding
only the changed collections plus ``lastUpdated``. Writes are at-most-once
and fire-and-forget: failures are logged and the local cache stays the
visible truth.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pyhomemind._constants import LAST_UPDATED_KEY, SCHEMA_VERSION_KEY
from pyhomemind.exceptions import HomeMindSessionStateError
from pyhomemind.models._base import HomeBaseModel
from pyhomemind.models.identity import Identity
from pyhomemind.state.events import CollectionKey, DocumentSnapshot, SessionPhase
from pyhomemind.state.migrations import upgrade_document
from pyhomemind.state.policy import can_transition, describe_read_error, is_terminal
from pyhomemind.state.store import LocalStateCache
from pyhomemind.stores.base import DocumentPath, DocumentStore, Subscription

_logger = logging.getLogger(__name__)

PhaseListener = Callable[[SessionPhase], None]
ChangeListener = Callable[[tuple[CollectionKey, ...]], None]


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def _remover(listeners: list[Any], listener: Any) -> Callable[[], None]:
    def _remove() -> None:
        if listener in listeners:
            listeners.remove(listener)

    return _remove


def resolve_document_path(app_id: str, identity: Identity | None, share_token: str | None = None) -> DocumentPath:
    """Public share path when a token is given, else the identity's private path."""
    if share_token:
        return DocumentPath.shared(app_id, share_token)
    if identity is None:
        raise HomeMindSessionStateError("An identity is required to resolve a private document path")
    return DocumentPath.private(app_id, identity.uid)


class SyncEngine:
    """Keeps one remote document and a :class:`LocalStateCache` consistent.

    Usage::

        engine = SyncEngine(store, cache, app_id="myhome-mind-v1")
        engine.begin_authentication()
        engine.authenticated(identity, share_token=None)
        engine.subscribe()
        await engine.wait_settled()
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: LocalStateCache,
        *,
        app_id: str,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._cache = cache
        self._app_id = app_id
        self._clock = clock
        self._phase = SessionPhase.UNAUTHENTICATED
        self._identity: Identity | None = None
        self._share_token: str | None = None
        self._path: DocumentPath | None = None
        self._subscription: Subscription | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._writes_halted = False
        self._settled = asyncio.Event()
        self._phase_listeners: list[PhaseListener] = []
        self._change_listeners: list[ChangeListener] = []
        self.error_message: str | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def path(self) -> DocumentPath | None:
        return self._path

    @property
    def read_only(self) -> bool:
        return self._cache.read_only

    @property
    def writes_halted(self) -> bool:
        return self._writes_halted

    @property
    def can_write(self) -> bool:
        return (
            self._identity is not None
            and self._path is not None
            and not self._cache.read_only
            and not self._writes_halted
        )

    def now_ms(self) -> int:
        return self._clock()

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def add_phase_listener(self, listener: PhaseListener) -> Callable[[], None]:
        self._phase_listeners.append(listener)
        return _remover(self._phase_listeners, listener)

    def add_change_listener(self, listener: ChangeListener) -> Callable[[], None]:
        self._change_listeners.append(listener)
        return _remover(self._change_listeners, listener)

    def _transition(self, target: SessionPhase) -> None:
        if not can_transition(self._phase, target):
            raise HomeMindSessionStateError(f"Cannot move session from {self._phase} to {target}")
        _logger.debug("Session phase %s -> %s", self._phase, target)
        self._phase = target
        if is_terminal(target) or target is SessionPhase.SYNCED:
            self._settled.set()
        for listener in list(self._phase_listeners):
            try:
                listener(target)
            except Exception:
                _logger.debug("Phase listener failed", exc_info=True)

    def _notify_change(self, changed: tuple[CollectionKey, ...]) -> None:
        for listener in list(self._change_listeners):
            try:
                listener(changed)
            except Exception:
                _logger.debug("Change listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def resolve_document_path(self, identity: Identity | None, share_token: str | None = None) -> DocumentPath:
        return resolve_document_path(self._app_id, identity, share_token)

    def begin_authentication(self) -> None:
        self._transition(SessionPhase.AUTHENTICATING)

    def authentication_failed(self, error: BaseException) -> None:
        self.error_message = str(error) or type(error).__name__
        _logger.warning("Authentication failed: %s", self.error_message)
        self._transition(SessionPhase.AUTH_FAILED)

    def authenticated(self, identity: Identity, *, share_token: str | None = None) -> DocumentPath:
        """Record the identity and fix the session's document path.

        The path is resolved once; later calls keep it unless
        :meth:`resubscribe` switches identity.
        """
        self._identity = identity
        if self._path is None:
            self._share_token = share_token
            self._path = self.resolve_document_path(identity, share_token)
            self._cache.read_only = bool(share_token)
        self._transition(SessionPhase.AUTHENTICATED)
        return self._path

    def subscribe(self, path: DocumentPath | None = None) -> Subscription:
        """Tear down the current subscription and subscribe to *path*."""
        target = path or self._path
        if target is None:
            raise HomeMindSessionStateError("No document path; authenticate first")
        self._teardown_subscription()
        self._transition(SessionPhase.SUBSCRIBING)
        self._path = target
        self._settled.clear()
        _logger.debug("Subscribing to %s read_only=%s", target, self._cache.read_only)
        subscription = self._store.subscribe(target, self._on_snapshot, self._on_error)
        self._subscription = subscription
        return subscription

    def resubscribe(self, identity: Identity) -> Subscription:
        """Switch to another identity's document (e.g. after a federated upgrade)."""
        self._teardown_subscription()
        if self._identity is None or identity.uid != self._identity.uid:
            # Collections of the previous user must never reach the new document.
            self._cache.reset()
        self._identity = identity
        self._path = self.resolve_document_path(identity, self._share_token)
        return self.subscribe(self._path)

    def identity_updated(self, identity: Identity) -> None:
        """Record new profile fields for the current uid (e.g. after linking)."""
        if self._identity is not None and identity.uid == self._identity.uid:
            self._identity = identity

    def signed_out(self) -> None:
        self._teardown_subscription()
        self._cache.reset()
        self._identity = None
        self._path = None
        if self._phase is not SessionPhase.UNAUTHENTICATED and can_transition(
            self._phase, SessionPhase.UNAUTHENTICATED
        ):
            self._transition(SessionPhase.UNAUTHENTICATED)

    async def wait_settled(self, timeout: float | None = None) -> SessionPhase:
        """Wait for the first snapshot or a terminal error."""
        await asyncio.wait_for(self._settled.wait(), timeout)
        return self._phase

    def _teardown_subscription(self) -> None:
        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            subscription.close()
            _logger.debug("Subscription closed")

    # ------------------------------------------------------------------
    # Remote -> local
    # ------------------------------------------------------------------

    def _on_snapshot(self, snapshot: DocumentSnapshot) -> None:
        if self._phase not in (SessionPhase.SUBSCRIBING, SessionPhase.SYNCED):
            _logger.debug("Ignoring snapshot for %s in phase %s", snapshot.path, self._phase)
            return
        if self._path is not None and snapshot.path != str(self._path):
            _logger.debug("Ignoring snapshot for stale path %s", snapshot.path)
            return

        upgraded = None
        if snapshot.exists:
            upgraded = upgrade_document(snapshot.data)
            snapshot = snapshot.model_copy(update={"data": upgraded.data})

        changed = self._cache.apply_snapshot(snapshot)
        _logger.debug("Snapshot merged path=%s exists=%s changed=%s", snapshot.path, snapshot.exists, changed)
        if self._phase is SessionPhase.SUBSCRIBING:
            self._transition(SessionPhase.SYNCED)

        if upgraded is not None and upgraded.upgraded and self.can_write:
            payload: dict[str, Any] = {key.value: upgraded.data[key.value] for key in upgraded.changed}
            payload[SCHEMA_VERSION_KEY] = upgraded.to_version
            _logger.debug("Persisting schema upgrade v%d -> v%d", upgraded.from_version, upgraded.to_version)
            self._schedule_write(payload)

        self._notify_change(changed)

    def _on_error(self, error: BaseException) -> None:
        message, halt_writes = describe_read_error(error)
        _logger.warning("Document read failed for %s: %s", self._path, message)
        self.error_message = message
        if halt_writes:
            self._writes_halted = True
        self._subscription = None
        if self._phase is not SessionPhase.READ_ERROR:
            self._transition(SessionPhase.READ_ERROR)

    # ------------------------------------------------------------------
    # Local -> remote
    # ------------------------------------------------------------------

    def persist(
        self,
        *,
        spaces: Sequence[HomeBaseModel] | None = None,
        items: Sequence[HomeBaseModel] | None = None,
        groceries: Sequence[HomeBaseModel] | None = None,
        repairs: Sequence[HomeBaseModel] | None = None,
    ) -> asyncio.Task[None] | None:
        """Merge-write the given collections; untouched keys stay as they are.

        Collections whose remote value is malformed are held back so the
        unreadable remote data is not overwritten with a stale local copy.
        Returns the scheduled write task, or ``None`` when the session may
        not write (no identity, read-only, or writes halted) or nothing is
        left to write.
        """
        provided = {
            CollectionKey.SPACES: spaces,
            CollectionKey.ITEMS: items,
            CollectionKey.GROCERIES: groceries,
            CollectionKey.REPAIRS: repairs,
        }
        payload: dict[str, Any] = {
            key.value: [value.to_wire() for value in values] for key, values in provided.items() if values is not None
        }
        held = sorted(key.value for key in self._cache.malformed if key.value in payload)
        if held:
            _logger.warning("Not writing malformed remote collections %s to %s", held, self._path)
            for key in held:
                del payload[key]
        if not payload:
            return None
        return self._schedule_write(payload)

    def _schedule_write(self, payload: Mapping[str, Any]) -> asyncio.Task[None] | None:
        if not self.can_write:
            _logger.debug(
                "Skipping write identity=%s read_only=%s halted=%s",
                self._identity is not None,
                self._cache.read_only,
                self._writes_halted,
            )
            return None
        assert self._path is not None  # noqa: S101
        stamped = dict(payload)
        stamped[LAST_UPDATED_KEY] = self._clock()
        self._cache.last_updated = stamped[LAST_UPDATED_KEY]

        task = asyncio.get_running_loop().create_task(self._write(self._path, stamped))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, path: DocumentPath, payload: dict[str, Any]) -> None:
        try:
            await self._store.merge_write(path, payload)
        except Exception:
            _logger.error("Remote write to %s failed keys=%s", path, sorted(payload), exc_info=True)

    async def wait_pending(self) -> None:
        """Wait until every scheduled write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        """Flush in-flight writes and tear down the subscription."""
        await self.wait_pending()
        self._teardown_subscription()
