"""High-level async client for the MyHome Mind document store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import aiohttp

from pyhomemind._client import handlers as _handlers
from pyhomemind._constants import LAST_UPDATED_KEY
from pyhomemind._transport import HttpTransport
from pyhomemind.auth import FirebaseIdentityProvider, IdentityProvider
from pyhomemind.config import HomeMindConfig
from pyhomemind.exceptions import HomeMindAuthenticationError, HomeMindError, HomeMindReadOnlyError
from pyhomemind.models.checklist import ChecklistEntry
from pyhomemind.models.identity import Identity
from pyhomemind.models.item import Item, Option
from pyhomemind.models.space import Space
from pyhomemind.search import SearchResults, search
from pyhomemind.share import build_share_url, new_share_token
from pyhomemind.state.events import CollectionKey, SessionPhase
from pyhomemind.state.store import LocalStateCache
from pyhomemind.stores.base import DocumentPath, DocumentStore
from pyhomemind.stores.firestore import FirestoreDocumentStore
from pyhomemind.sync import SyncEngine

_logger = logging.getLogger(__name__)


class HomeMindClient:
    """Async client for one user's home inventory.

    Usage::

        async with HomeMindClient(config) as client:
            phase = await client.start()
            item = client.add_item("2")

    The document store and identity provider default to Firestore and
    Firebase Auth; pass ``store=``/``identity_provider=`` to inject others
    (both are required to run without backend credentials). A
    ``share_token`` opens the read-only shared view.
    """

    def __init__(
        self,
        config: HomeMindConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        store: DocumentStore | None = None,
        identity_provider: IdentityProvider | None = None,
        share_token: str | None = None,
        on_change: Callable[[tuple[CollectionKey, ...]], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._store = store
        self._identity_provider = identity_provider
        self._share_token = share_token or None
        self._on_change = on_change
        self._cache = LocalStateCache(read_only=self._share_token is not None)
        self._engine: SyncEngine | None = None
        self._remove_identity_listener: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HomeMindClient:
        if self._store is None or self._identity_provider is None:
            # Fatal before anything starts: no backend to talk to.
            self._config.validate()
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = HttpTransport(self._config, self._http_session)
            if self._identity_provider is None:
                self._identity_provider = FirebaseIdentityProvider(self._config, transport)
            if self._store is None:
                self._store = FirestoreDocumentStore(self._config, transport, self._identity_provider.id_token)

        self._engine = SyncEngine(self._store, self._cache, app_id=self._config.app_id)
        if self._on_change is not None:
            self._engine.add_change_listener(self._on_change)
        self._remove_identity_listener = self._identity_provider.add_listener(self._on_identity_changed)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._remove_identity_listener is not None:
            self._remove_identity_listener()
            self._remove_identity_listener = None
        if self._engine is not None:
            await self._engine.close()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Bootstrap and identity
    # ------------------------------------------------------------------

    async def start(self, *, timeout: float | None = None) -> SessionPhase:
        """Sign in, subscribe, and wait for the first snapshot or a fatal error.

        Returns the resulting phase: ``SYNCED``, ``AUTH_FAILED`` or
        ``READ_ERROR``. On failure :attr:`error_message` holds the message to
        show; recovery is a new client.
        """
        engine = self.engine
        provider = self._require_provider()
        engine.begin_authentication()
        try:
            identity = provider.current
            if identity is None:
                if self._config.initial_auth_token:
                    identity = await provider.sign_in_with_custom_token(self._config.initial_auth_token)
                else:
                    identity = await provider.sign_in_anonymously()
        except HomeMindAuthenticationError as exc:
            engine.authentication_failed(exc)
            return engine.phase

        path = engine.authenticated(identity, share_token=self._share_token)
        _logger.debug("Session document path=%s read_only=%s", path, self._cache.read_only)
        engine.subscribe()
        return await engine.wait_settled(timeout)

    def _on_identity_changed(self, identity: Identity | None) -> None:
        engine = self._engine
        if engine is None or engine.identity is None:
            # Bootstrap has not recorded an identity yet; start() handles it.
            return
        if identity is None:
            _logger.debug("Signed out; tearing down subscription")
            engine.signed_out()
            return
        if identity.uid == engine.identity.uid:
            engine.identity_updated(identity)
            return
        if engine.phase in (SessionPhase.SUBSCRIBING, SessionPhase.SYNCED):
            _logger.debug("Identity changed uid=%s; resubscribing", identity.uid)
            engine.resubscribe(identity)

    async def link_with_idp(
        self,
        provider_id: str,
        *,
        id_token: str | None = None,
        access_token: str | None = None,
    ) -> Identity:
        """Upgrade the anonymous account with a federated credential."""
        return await self._require_provider().link_with_idp(provider_id, id_token=id_token, access_token=access_token)

    async def sign_out(self) -> None:
        await self.engine.wait_pending()
        await self._require_provider().sign_out()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_provider(self) -> IdentityProvider:
        if self._identity_provider is None:
            raise HomeMindError("Client not initialized. Use 'async with HomeMindClient(...) as client:'")
        return self._identity_provider

    @property
    def engine(self) -> SyncEngine:
        if self._engine is None:
            raise HomeMindError("Client not initialized. Use 'async with HomeMindClient(...) as client:'")
        return self._engine

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> HomeMindConfig:
        return self._config

    @property
    def cache(self) -> LocalStateCache:
        return self._cache

    @property
    def phase(self) -> SessionPhase:
        return self.engine.phase

    @property
    def error_message(self) -> str | None:
        return self.engine.error_message

    @property
    def identity(self) -> Identity | None:
        return self.engine.identity

    @property
    def read_only(self) -> bool:
        return self._cache.read_only

    @property
    def spaces(self) -> tuple[Space, ...]:
        return self._cache.spaces

    @property
    def items(self) -> tuple[Item, ...]:
        return self._cache.items

    @property
    def groceries(self) -> tuple[ChecklistEntry, ...]:
        return self._cache.groceries

    @property
    def repairs(self) -> tuple[ChecklistEntry, ...]:
        return self._cache.repairs

    @property
    def selected_item(self) -> Item | None:
        return self._cache.selected_item

    @property
    def selected_space(self) -> Space | None:
        return self._cache.selected_space

    def items_in(self, space_id: str) -> tuple[Item, ...]:
        return tuple(item for item in self._cache.items if item.space_id == space_id)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def set_search_query(self, query: str) -> SearchResults:
        self._cache.search_query = query
        return self.search()

    def search(self, query: str | None = None) -> SearchResults:
        """Filter the local collections by *query* (defaults to the current search text)."""
        cache = self._cache
        return search(
            cache.spaces,
            cache.items,
            cache.groceries,
            cache.repairs,
            cache.search_query if query is None else query,
        )

    # ------------------------------------------------------------------
    # Spaces
    # ------------------------------------------------------------------

    def add_space(self, name: str = "") -> Space:
        return _handlers.add_space(self, name)

    def update_space(self, space_id: str, **fields: Any) -> Space:
        return _handlers.update_space(self, space_id, fields)

    def rename_space(self, space_id: str, name: str) -> Space:
        return _handlers.update_space(self, space_id, {"name": name})

    def delete_space(self, space_id: str, *, cascade: bool = False) -> None:
        _handlers.delete_space(self, space_id, cascade=cascade)

    def select_space(self, space_id: str | None) -> Space | None:
        return _handlers.select_space(self, space_id)

    async def set_space_image(self, space_id: str, path: str | Path) -> Space | None:
        return await _handlers.set_space_image(self, space_id, path)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def add_item(self, space_id: str, name: str | None = None) -> Item:
        return _handlers.add_item(self, space_id, name)

    def update_item(self, item_id: str, **fields: Any) -> Item:
        return _handlers.update_item(self, item_id, fields)

    def delete_item(self, item_id: str) -> None:
        _handlers.delete_item(self, item_id)

    def select_item(self, item_id: str | None) -> Item | None:
        return _handlers.select_item(self, item_id)

    async def set_item_image(self, item_id: str, path: str | Path) -> Item | None:
        return await _handlers.set_item_image(self, item_id, path)

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def add_option(self, item_id: str) -> Option:
        return _handlers.add_option(self, item_id)

    def update_option(self, item_id: str, option_id: str, **fields: Any) -> Item:
        return _handlers.update_option(self, item_id, option_id, fields)

    def toggle_option_winner(self, item_id: str, option_id: str) -> Item:
        return _handlers.toggle_option_winner(self, item_id, option_id)

    def delete_option(self, item_id: str, option_id: str) -> Item:
        return _handlers.delete_option(self, item_id, option_id)

    def move_option(self, item_id: str, from_index: int, to_index: int) -> Item:
        return _handlers.move_option(self, item_id, from_index, to_index)

    async def set_option_image(self, item_id: str, option_id: str, path: str | Path) -> Item | None:
        return await _handlers.set_option_image(self, item_id, option_id, path)

    # ------------------------------------------------------------------
    # Checklists
    # ------------------------------------------------------------------

    def add_grocery(self, text: str = "") -> ChecklistEntry:
        return _handlers.add_entry(self, CollectionKey.GROCERIES, text)

    def update_grocery(self, entry_id: str, **fields: Any) -> ChecklistEntry:
        return _handlers.update_entry(self, CollectionKey.GROCERIES, entry_id, fields)

    def delete_grocery(self, entry_id: str) -> None:
        _handlers.delete_entry(self, CollectionKey.GROCERIES, entry_id)

    def add_repair(self, text: str = "") -> ChecklistEntry:
        return _handlers.add_entry(self, CollectionKey.REPAIRS, text)

    def update_repair(self, entry_id: str, **fields: Any) -> ChecklistEntry:
        return _handlers.update_entry(self, CollectionKey.REPAIRS, entry_id, fields)

    def delete_repair(self, entry_id: str) -> None:
        _handlers.delete_entry(self, CollectionKey.REPAIRS, entry_id)

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    async def publish_share(self, token: str | None = None) -> str:
        """Copy the full local document to a public share path; returns the token.

        Unlike regular writes this one is awaited and errors propagate, so
        the caller only hands out links that exist.
        """
        if self._cache.read_only:
            raise HomeMindReadOnlyError("A shared view cannot be re-shared")
        if self._store is None:
            raise HomeMindError("Client not initialized. Use 'async with HomeMindClient(...) as client:'")
        share_token = token or new_share_token()
        path = DocumentPath.shared(self._config.app_id, share_token)
        data = self._cache.document().to_wire()
        data[LAST_UPDATED_KEY] = self.engine.now_ms()
        await self._store.merge_write(path, data)
        _logger.debug("Published share token to %s", path)
        return share_token

    @staticmethod
    def share_url(base_url: str, token: str) -> str:
        return build_share_url(base_url, token)
