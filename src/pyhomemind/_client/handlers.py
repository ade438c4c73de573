"""Mutation handlers for :class:`pyhomemind.client.HomeMindClient`.

Each handler applies a pure update from :mod:`pyhomemind.mutations` to
the local cache and then persists only the collections it changed. These
functions keep `client.py` small without changing the public API.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pyhomemind import mutations
from pyhomemind.exceptions import HomeMindEntityNotFoundError, HomeMindReadOnlyError
from pyhomemind.images import encode_image
from pyhomemind.models.checklist import ChecklistEntry
from pyhomemind.models.item import Item, Option
from pyhomemind.models.space import Space
from pyhomemind.state.events import CollectionKey

if TYPE_CHECKING:
    from pyhomemind.client import HomeMindClient

_logger = logging.getLogger(__name__)

_CHECKLISTS = frozenset({CollectionKey.GROCERIES, CollectionKey.REPAIRS})


def _require_writable(client: HomeMindClient) -> None:
    if client.cache.read_only:
        raise HomeMindReadOnlyError("This is a read-only shared view")


def _commit(client: HomeMindClient, **collections: tuple[Any, ...]) -> None:
    """Replace the given collections locally, then persist exactly those."""
    for key, values in collections.items():
        client.cache.replace(CollectionKey(key), values)
    client.engine.persist(**collections)


# ----------------------------------------------------------------------
# Spaces
# ----------------------------------------------------------------------


def add_space(client: HomeMindClient, name: str = "") -> Space:
    _require_writable(client)
    spaces, space = mutations.add_space(client.cache.spaces, name)
    _commit(client, spaces=spaces)
    return space


def update_space(client: HomeMindClient, space_id: str, fields: dict[str, Any]) -> Space:
    _require_writable(client)
    spaces = mutations.update_space(client.cache.spaces, space_id, **fields)
    _commit(client, spaces=spaces)
    return next(space for space in spaces if space.id == space_id)


def delete_space(client: HomeMindClient, space_id: str, *, cascade: bool = False) -> None:
    _require_writable(client)
    spaces = mutations.delete_space(client.cache.spaces, space_id)
    if client.cache.selected_space_id == space_id:
        client.cache.selected_space_id = None
    if cascade:
        items = mutations.delete_items_in_space(client.cache.items, space_id)
        _commit(client, spaces=spaces, items=items)
    else:
        _commit(client, spaces=spaces)


def select_space(client: HomeMindClient, space_id: str | None) -> Space | None:
    if space_id is not None and not any(space.id == space_id for space in client.cache.spaces):
        raise HomeMindEntityNotFoundError("space", space_id)
    client.cache.selected_space_id = space_id
    return client.cache.selected_space


# ----------------------------------------------------------------------
# Items
# ----------------------------------------------------------------------


def add_item(client: HomeMindClient, space_id: str, name: str | None = None) -> Item:
    _require_writable(client)
    if not any(space.id == space_id for space in client.cache.spaces):
        raise HomeMindEntityNotFoundError("space", space_id)
    if name is None:
        items, item = mutations.add_item(client.cache.items, space_id)
    else:
        items, item = mutations.add_item(client.cache.items, space_id, name)
    _commit(client, items=items)
    return item


def update_item(client: HomeMindClient, item_id: str, fields: dict[str, Any]) -> Item:
    _require_writable(client)
    items = mutations.update_item(client.cache.items, item_id, **fields)
    _commit(client, items=items)
    return mutations.find_item(items, item_id)


def delete_item(client: HomeMindClient, item_id: str) -> None:
    _require_writable(client)
    items = mutations.delete_item(client.cache.items, item_id)
    if client.cache.selected_item_id == item_id:
        client.cache.selected_item_id = None
    _commit(client, items=items)


def select_item(client: HomeMindClient, item_id: str | None) -> Item | None:
    """Select an item, giving its options ids if any are missing."""
    if item_id is None:
        client.cache.selected_item_id = None
        return None
    items, changed = mutations.backfill_option_ids(client.cache.items, item_id)
    client.cache.selected_item_id = item_id
    if changed:
        _logger.debug("Backfilled option ids for item=%s", item_id)
        _commit(client, items=items)
    return client.cache.selected_item


# ----------------------------------------------------------------------
# Options
# ----------------------------------------------------------------------


def add_option(client: HomeMindClient, item_id: str) -> Option:
    _require_writable(client)
    items, option = mutations.add_option(client.cache.items, item_id)
    _commit(client, items=items)
    return option


def update_option(client: HomeMindClient, item_id: str, option_id: str, fields: dict[str, Any]) -> Item:
    _require_writable(client)
    items = mutations.update_option(client.cache.items, item_id, option_id, **fields)
    _commit(client, items=items)
    return mutations.find_item(items, item_id)


def toggle_option_winner(client: HomeMindClient, item_id: str, option_id: str) -> Item:
    _require_writable(client)
    items = mutations.toggle_option_winner(client.cache.items, item_id, option_id)
    _commit(client, items=items)
    return mutations.find_item(items, item_id)


def delete_option(client: HomeMindClient, item_id: str, option_id: str) -> Item:
    _require_writable(client)
    items = mutations.delete_option(client.cache.items, item_id, option_id)
    _commit(client, items=items)
    return mutations.find_item(items, item_id)


def move_option(client: HomeMindClient, item_id: str, from_index: int, to_index: int) -> Item:
    _require_writable(client)
    items = mutations.move_item_option(client.cache.items, item_id, from_index, to_index)
    _commit(client, items=items)
    return mutations.find_item(items, item_id)


# ----------------------------------------------------------------------
# Checklists
# ----------------------------------------------------------------------


def _checklist(key: CollectionKey) -> CollectionKey:
    if key not in _CHECKLISTS:
        raise ValueError(f"{key} is not a checklist")
    return key


def add_entry(client: HomeMindClient, key: CollectionKey, text: str = "") -> ChecklistEntry:
    _require_writable(client)
    entries, entry = mutations.add_entry(client.cache.get(_checklist(key)), text)
    _commit(client, **{key.value: entries})
    return entry


def update_entry(client: HomeMindClient, key: CollectionKey, entry_id: str, fields: dict[str, Any]) -> ChecklistEntry:
    _require_writable(client)
    entries = mutations.update_entry(client.cache.get(_checklist(key)), entry_id, **fields)
    _commit(client, **{key.value: entries})
    return next(entry for entry in entries if entry.id == entry_id)


def delete_entry(client: HomeMindClient, key: CollectionKey, entry_id: str) -> None:
    _require_writable(client)
    entries = mutations.delete_entry(client.cache.get(_checklist(key)), entry_id)
    _commit(client, **{key.value: entries})


# ----------------------------------------------------------------------
# Images
# ----------------------------------------------------------------------


async def _read_image(client: HomeMindClient, path: str | Path) -> str:
    _require_writable(client)
    return await encode_image(path, max_bytes=client.config.max_image_bytes)


async def set_space_image(client: HomeMindClient, space_id: str, path: str | Path) -> Space | None:
    image = await _read_image(client, path)
    # The cache may have changed while the file was read; apply to what is there now.
    try:
        spaces = mutations.update_space(client.cache.spaces, space_id, image=image)
    except HomeMindEntityNotFoundError:
        _logger.debug("Space %s vanished before its image was read; dropping image", space_id)
        return None
    _commit(client, spaces=spaces)
    return next(space for space in spaces if space.id == space_id)


async def set_item_image(client: HomeMindClient, item_id: str, path: str | Path) -> Item | None:
    image = await _read_image(client, path)
    try:
        items = mutations.update_item(client.cache.items, item_id, image=image)
    except HomeMindEntityNotFoundError:
        _logger.debug("Item %s vanished before its image was read; dropping image", item_id)
        return None
    _commit(client, items=items)
    return mutations.find_item(items, item_id)


async def set_option_image(client: HomeMindClient, item_id: str, option_id: str, path: str | Path) -> Item | None:
    image = await _read_image(client, path)
    try:
        items = mutations.update_option(client.cache.items, item_id, option_id, image=image)
    except HomeMindEntityNotFoundError:
        _logger.debug("Option %s/%s vanished before its image was read; dropping image", item_id, option_id)
        return None
    _commit(client, items=items)
    return mutations.find_item(items, item_id)
