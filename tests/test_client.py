from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from pyhomemind.client import HomeMindClient
from pyhomemind.config import HomeMindConfig
from pyhomemind.exceptions import (
    HomeMindAuthenticationError,
    HomeMindConfigError,
    HomeMindEntityNotFoundError,
    HomeMindImageTooLargeError,
    HomeMindReadOnlyError,
)
from pyhomemind.models.identity import Identity
from pyhomemind.state.events import SessionPhase
from pyhomemind.stores.base import DocumentPath
from pyhomemind.stores.memory import InMemoryDocumentStore

APP_ID = "myhome-mind-v1"
PRIVATE = DocumentPath.private(APP_ID, "user-1")
CONFIG = HomeMindConfig(api_key="test-key", project_id="test-project")


class _FakeIdentityProvider:
    def __init__(self, uid: str = "user-1", *, error: Exception | None = None) -> None:
        self._uid = uid
        self._error = error
        self._identity: Identity | None = None
        self._listeners: list[Callable[[Identity | None], None]] = []
        self.custom_tokens: list[str] = []

    @property
    def current(self) -> Identity | None:
        return self._identity

    def _set(self, identity: Identity | None) -> Identity | None:
        self._identity = identity
        for listener in list(self._listeners):
            listener(identity)
        return identity

    async def sign_in_anonymously(self) -> Identity:
        if self._error is not None:
            raise self._error
        identity = Identity(uid=self._uid)
        self._set(identity)
        return identity

    async def sign_in_with_custom_token(self, token: str) -> Identity:
        self.custom_tokens.append(token)
        identity = Identity(uid=self._uid, is_anonymous=False)
        self._set(identity)
        return identity

    async def link_with_idp(
        self,
        provider_id: str,
        *,
        id_token: str | None = None,
        access_token: str | None = None,
    ) -> Identity:
        identity = Identity(uid="linked-user", is_anonymous=False, display_name="Sam")
        self._set(identity)
        return identity

    async def sign_out(self) -> None:
        self._set(None)

    async def id_token(self) -> str | None:
        return "fake-token" if self._identity else None

    def add_listener(self, listener: Callable[[Identity | None], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)


def _client(
    store: InMemoryDocumentStore,
    *,
    provider: _FakeIdentityProvider | None = None,
    share_token: str | None = None,
    config: HomeMindConfig = CONFIG,
) -> HomeMindClient:
    return HomeMindClient(
        config,
        store=store,
        identity_provider=provider or _FakeIdentityProvider(),
        share_token=share_token,
    )


@pytest.mark.asyncio
async def test_start_signs_in_anonymously_and_syncs() -> None:
    store = InMemoryDocumentStore()
    async with _client(store) as client:
        phase = await client.start(timeout=1)

        assert phase is SessionPhase.SYNCED
        assert client.identity is not None and client.identity.is_anonymous
        assert client.engine.path == PRIVATE
        assert [space.name for space in client.spaces][:2] == ["Living Room", "Kitchen"]


@pytest.mark.asyncio
async def test_start_uses_initial_custom_token() -> None:
    provider = _FakeIdentityProvider()
    config = HomeMindConfig(api_key="k", project_id="p", initial_auth_token="custom-123")
    async with _client(InMemoryDocumentStore(), provider=provider, config=config) as client:
        await client.start(timeout=1)

    assert provider.custom_tokens == ["custom-123"]


@pytest.mark.asyncio
async def test_auth_failure_is_terminal() -> None:
    provider = _FakeIdentityProvider(error=HomeMindAuthenticationError("ADMIN_ONLY_OPERATION"))
    store = InMemoryDocumentStore()
    async with _client(store, provider=provider) as client:
        phase = await client.start(timeout=1)

        assert phase is SessionPhase.AUTH_FAILED
        assert client.error_message == "ADMIN_ONLY_OPERATION"
        assert store.subscriber_count == 0


@pytest.mark.asyncio
async def test_missing_backend_config_fails_before_start() -> None:
    client = HomeMindClient(HomeMindConfig(api_key="placeholder", project_id="p"))

    with pytest.raises(HomeMindConfigError):
        async with client:
            pass


@pytest.mark.asyncio
async def test_add_item_persists_only_items() -> None:
    grocery = {"id": "g1", "text": "Milk", "completed": False}
    store = InMemoryDocumentStore({str(PRIVATE): {"schemaVersion": 1, "groceries": [grocery]}})
    async with _client(store) as client:
        await client.start(timeout=1)

        item = client.add_item("2")
        await client.engine.wait_pending()

        stored = store.peek(PRIVATE)
        assert stored is not None
        assert stored["groceries"] == [grocery]
        assert stored["items"] == [item.to_wire()]
        assert client.items_in("2") == (item,)


@pytest.mark.asyncio
async def test_add_item_to_unknown_space() -> None:
    async with _client(InMemoryDocumentStore()) as client:
        await client.start(timeout=1)

        with pytest.raises(HomeMindEntityNotFoundError):
            client.add_item("no-such-space")


@pytest.mark.asyncio
async def test_deleting_selected_item_clears_selection() -> None:
    async with _client(InMemoryDocumentStore()) as client:
        await client.start(timeout=1)
        item = client.add_item("1", "Sofa")
        client.select_item(item.id)

        client.delete_item(item.id)

        assert client.selected_item is None
        assert client.items == ()


@pytest.mark.asyncio
async def test_delete_space_keeps_items_unless_cascading() -> None:
    async with _client(InMemoryDocumentStore()) as client:
        await client.start(timeout=1)
        kept = client.add_item("1")
        client.add_item("2")
        client.select_space("1")

        client.delete_space("1")
        assert client.selected_space is None
        assert kept in client.items

        client.delete_space("2", cascade=True)
        assert client.items == (kept,)


@pytest.mark.asyncio
async def test_selecting_legacy_item_backfills_option_ids() -> None:
    legacy = {
        "schemaVersion": 1,
        "items": [{"id": "i1", "spaceId": "1", "name": "Sofa", "options": [{"model": "Kivik"}, {"model": "Ektorp"}]}],
    }
    store = InMemoryDocumentStore({str(PRIVATE): legacy})
    async with _client(store) as client:
        await client.start(timeout=1)
        assert client.items[0].needs_option_ids

        item = client.select_item("i1")
        await client.engine.wait_pending()

        assert item is not None
        ids = [option.id for option in item.options]
        assert all(ids)
        stored = store.peek(PRIVATE)
        assert stored is not None
        assert [option["id"] for option in stored["items"][0]["options"]] == ids


@pytest.mark.asyncio
async def test_winner_and_reorder_through_client() -> None:
    async with _client(InMemoryDocumentStore()) as client:
        await client.start(timeout=1)
        item = client.add_item("2", "Fridge")
        first = client.add_option(item.id)
        second = client.add_option(item.id)

        client.update_option(item.id, first.id or "", winner=True, price="499")
        updated = client.toggle_option_winner(item.id, second.id or "")
        assert updated.winner is not None and updated.winner.id == second.id

        moved = client.move_option(item.id, 1, 0)
        assert [option.id for option in moved.options] == [second.id, first.id]
        assert moved.options[1].price_value == 499.0


@pytest.mark.asyncio
async def test_checklists_through_client() -> None:
    store = InMemoryDocumentStore()
    async with _client(store) as client:
        await client.start(timeout=1)
        milk = client.add_grocery("Milk")
        client.add_grocery("Eggs")
        tap = client.add_repair("Fix tap")

        client.update_grocery(milk.id, completed=True)
        client.delete_repair(tap.id)
        await client.engine.wait_pending()

        assert [entry.text for entry in client.groceries] == ["Eggs", "Milk"]
        assert client.groceries[1].completed is True
        stored = store.peek(PRIVATE)
        assert stored is not None
        assert stored["repairs"] == []


@pytest.mark.asyncio
async def test_search_through_client() -> None:
    async with _client(InMemoryDocumentStore()) as client:
        await client.start(timeout=1)
        item = client.add_item("2", "Kettle")
        option = client.add_option(item.id)
        client.update_option(item.id, option.id or "", store="Argos")

        results = client.set_search_query("argos")

        assert [found.id for found in results.items] == [item.id]
        assert [space.id for space in results.spaces] == ["2"]
        assert client.search("").items == client.items


@pytest.mark.asyncio
async def test_shared_view_is_read_only() -> None:
    shared = DocumentPath.shared(APP_ID, "tok")
    document = {"schemaVersion": 1, "items": [{"id": "i1", "spaceId": "1", "name": "Sofa"}]}
    store = InMemoryDocumentStore({str(shared): document})
    async with _client(store, share_token="tok") as client:
        phase = await client.start(timeout=1)

        assert phase is SessionPhase.SYNCED
        assert client.read_only is True
        assert [item.name for item in client.items] == ["Sofa"]
        with pytest.raises(HomeMindReadOnlyError):
            client.add_item("1")
        with pytest.raises(HomeMindReadOnlyError):
            await client.publish_share()
        assert store.peek(shared) == document
        assert store.peek(PRIVATE) is None


@pytest.mark.asyncio
async def test_publish_share_copies_document() -> None:
    store = InMemoryDocumentStore()
    async with _client(store) as client:
        await client.start(timeout=1)
        client.add_grocery("Milk")

        token = await client.publish_share("tok-1")

        shared = store.peek(DocumentPath.shared(APP_ID, "tok-1"))
        assert token == "tok-1"
        assert shared is not None
        assert [entry["text"] for entry in shared["groceries"]] == ["Milk"]
        assert len(shared["spaces"]) == 7
        assert client.share_url("https://app.example/", token) == "https://app.example/?share=tok-1"


@pytest.mark.asyncio
async def test_set_item_image_stores_data_url(tmp_path: Path) -> None:
    image = tmp_path / "photo.png"
    image.write_bytes(b"\x89PNG\r\n\x1a\n")
    async with _client(InMemoryDocumentStore()) as client:
        await client.start(timeout=1)
        item = client.add_item("1")

        updated = await client.set_item_image(item.id, image)

        assert updated is not None
        assert updated.image is not None
        assert updated.image.startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_oversized_image_is_rejected(tmp_path: Path) -> None:
    image = tmp_path / "big.jpg"
    image.write_bytes(b"x" * 32)
    config = HomeMindConfig(api_key="k", project_id="p", max_image_bytes=16)
    async with _client(InMemoryDocumentStore(), config=config) as client:
        await client.start(timeout=1)

        with pytest.raises(HomeMindImageTooLargeError):
            await client.set_space_image("1", image)
        assert client.spaces[0].image is None


@pytest.mark.asyncio
async def test_image_for_removed_item_is_dropped(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    async with _client(InMemoryDocumentStore()) as client:
        await client.start(timeout=1)
        item = client.add_item("1")

        async def _encode_after_delete(_path: object, *, max_bytes: int | None = None) -> str:
            client.delete_item(item.id)
            return "data:image/png;base64,AAAA"

        monkeypatch.setattr("pyhomemind._client.handlers.encode_image", _encode_after_delete)
        with caplog.at_level(logging.DEBUG, logger="pyhomemind._client.handlers"):
            result = await client.set_item_image(item.id, tmp_path / "unused.png")

        assert result is None
        assert client.items == ()
        assert "dropping image" in caplog.text


@pytest.mark.asyncio
async def test_linking_to_another_account_resubscribes() -> None:
    store = InMemoryDocumentStore()
    async with _client(store) as client:
        await client.start(timeout=1)

        identity = await client.link_with_idp("google.com", id_token="google-id-token")
        await client.engine.wait_settled(timeout=1)

        assert identity.uid == "linked-user"
        assert client.engine.path == DocumentPath.private(APP_ID, "linked-user")
        assert store.subscriber_count == 1


@pytest.mark.asyncio
async def test_sign_out_tears_down_subscription() -> None:
    store = InMemoryDocumentStore()
    async with _client(store) as client:
        await client.start(timeout=1)

        await client.sign_out()

        assert client.phase is SessionPhase.UNAUTHENTICATED
        assert client.identity is None
        assert store.subscriber_count == 0


@pytest.mark.asyncio
async def test_linking_to_another_account_starts_from_empty_state() -> None:
    store = InMemoryDocumentStore()
    async with _client(store) as client:
        await client.start(timeout=1)
        client.add_grocery("user-1 secret")
        await client.engine.wait_pending()

        await client.link_with_idp("google.com", id_token="google-id-token")
        await client.engine.wait_settled(timeout=1)

        assert client.groceries == ()
        client.add_grocery("first")
        await client.engine.wait_pending()

    linked = store.peek(DocumentPath.private(APP_ID, "linked-user"))
    assert linked is not None
    assert [entry["text"] for entry in linked["groceries"]] == ["first"]
    previous = store.peek(PRIVATE)
    assert previous is not None
    assert [entry["text"] for entry in previous["groceries"]] == ["user-1 secret"]


@pytest.mark.asyncio
async def test_sign_out_then_start_as_another_user() -> None:
    store = InMemoryDocumentStore()
    provider = _FakeIdentityProvider()
    async with _client(store, provider=provider) as client:
        await client.start(timeout=1)
        client.add_grocery("user-1 secret")
        client.select_item(client.add_item("1", "Sofa").id)

        await client.sign_out()

        assert client.groceries == ()
        assert client.items == ()
        assert client.engine.path is None

        provider._uid = "user-2"
        phase = await client.start(timeout=1)
        assert phase is SessionPhase.SYNCED
        assert client.engine.path == DocumentPath.private(APP_ID, "user-2")
        client.add_grocery("second")
        await client.engine.wait_pending()

    stored = store.peek(DocumentPath.private(APP_ID, "user-2"))
    assert stored is not None
    assert [entry["text"] for entry in stored["groceries"]] == ["second"]


@pytest.mark.asyncio
async def test_readable_remote_items_survive_local_edit() -> None:
    remote = {
        "schemaVersion": 1,
        "items": [{"id": "kettle", "spaceId": "2", "name": "Kettle"}, {"id": "orphan", "name": "Orphan"}],
    }
    store = InMemoryDocumentStore({str(PRIVATE): remote})
    async with _client(store) as client:
        await client.start(timeout=1)
        client.add_item("3", "Towel")
        await client.engine.wait_pending()

    stored = store.peek(PRIVATE)
    assert stored is not None
    assert [item["name"] for item in stored["items"]] == ["Kettle", "Towel"]
