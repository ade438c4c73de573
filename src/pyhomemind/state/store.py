"""Local state cache.

In-memory mirror of the four document collections plus UI-only state.
This is the only component allowed to merge remote snapshots; mutation
handlers replace whole collections through :meth:`LocalStateCache.replace`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from pyhomemind._constants import LAST_UPDATED_KEY, SCHEMA_VERSION
from pyhomemind.models._base import HomeBaseModel
from pyhomemind.models.checklist import ChecklistEntry
from pyhomemind.models.document import HomeDocument
from pyhomemind.models.item import Item
from pyhomemind.models.space import Space, default_spaces
from pyhomemind.state.events import CollectionKey, DocumentSnapshot

_logger = logging.getLogger(__name__)

_ENTRY_MODELS: dict[CollectionKey, type[HomeBaseModel]] = {
    CollectionKey.SPACES: Space,
    CollectionKey.ITEMS: Item,
    CollectionKey.GROCERIES: ChecklistEntry,
    CollectionKey.REPAIRS: ChecklistEntry,
}


class LocalStateCache:
    """Collections are immutable tuples of frozen models.

    Readers can therefore hold on to a collection value without it changing
    under them; every mutation produces a new tuple.
    """

    def __init__(self, *, read_only: bool = False) -> None:
        self.read_only = read_only
        self.search_query: str = ""
        self.reset()

    def reset(self) -> None:
        """Forget all document state (used when the session changes user).

        ``read_only`` and the search text are session settings and survive.
        """
        self._collections: dict[CollectionKey, tuple[Any, ...]] = {
            CollectionKey.SPACES: default_spaces(),
            CollectionKey.ITEMS: (),
            CollectionKey.GROCERIES: (),
            CollectionKey.REPAIRS: (),
        }
        self.malformed: set[CollectionKey] = set()
        """Collections whose remote value could not be read; they must not be written."""
        self.selected_space_id: str | None = None
        self.selected_item_id: str | None = None
        self.last_updated: int | None = None
        self.loaded = False

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    @property
    def spaces(self) -> tuple[Space, ...]:
        return self._collections[CollectionKey.SPACES]

    @property
    def items(self) -> tuple[Item, ...]:
        return self._collections[CollectionKey.ITEMS]

    @property
    def groceries(self) -> tuple[ChecklistEntry, ...]:
        return self._collections[CollectionKey.GROCERIES]

    @property
    def repairs(self) -> tuple[ChecklistEntry, ...]:
        return self._collections[CollectionKey.REPAIRS]

    def get(self, key: CollectionKey) -> tuple[Any, ...]:
        return self._collections[key]

    def replace(self, key: CollectionKey, values: Sequence[Any]) -> None:
        """Swap in a new value for one collection."""
        self._collections[key] = tuple(values)
        if key is CollectionKey.ITEMS:
            self._drop_dangling_selection()

    def document(self) -> HomeDocument:
        """The full local state as a document (used for share publishing)."""
        return HomeDocument(
            spaces=self.spaces,
            items=self.items,
            groceries=self.groceries,
            repairs=self.repairs,
            last_updated=self.last_updated,
            schema_version=SCHEMA_VERSION,
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def selected_item(self) -> Item | None:
        if self.selected_item_id is None:
            return None
        return next((item for item in self.items if item.id == self.selected_item_id), None)

    @property
    def selected_space(self) -> Space | None:
        if self.selected_space_id is None:
            return None
        return next((space for space in self.spaces if space.id == self.selected_space_id), None)

    def _drop_dangling_selection(self) -> None:
        if self.selected_item_id is not None and self.selected_item is None:
            _logger.debug("Clearing selection of removed item id=%s", self.selected_item_id)
            self.selected_item_id = None

    # ------------------------------------------------------------------
    # Remote snapshots
    # ------------------------------------------------------------------

    def apply_snapshot(self, snapshot: DocumentSnapshot) -> tuple[CollectionKey, ...]:
        """Sparse-merge a remote snapshot.

        Collections present in the snapshot replace the local value; absent
        ones are left untouched. A missing document changes nothing.
        Entries that fail validation are dropped one by one. A collection
        that is not a list at all keeps its local value and is marked
        malformed until a readable snapshot replaces it.
        Returns the collections that were replaced.
        """
        self.loaded = True
        if not snapshot.exists:
            return ()

        merged: list[CollectionKey] = []
        for key in snapshot.present_collections():
            values = _validate_entries(key, snapshot.data[key.value], snapshot.path)
            if values is None:
                _logger.warning("Ignoring malformed %s collection in %s", key.value, snapshot.path)
                self.malformed.add(key)
                continue
            self.malformed.discard(key)
            self._collections[key] = values
            merged.append(key)

        last_updated = snapshot.data.get(LAST_UPDATED_KEY)
        if isinstance(last_updated, int) and not isinstance(last_updated, bool):
            self.last_updated = last_updated

        self._drop_dangling_selection()
        return tuple(merged)


def _validate_entries(key: CollectionKey, raw: Any, path: str) -> tuple[Any, ...] | None:
    """Validate each entry of a stored collection, dropping unreadable ones.

    Returns ``None`` when *raw* is not a list.
    """
    if not isinstance(raw, list):
        return None
    model = _ENTRY_MODELS[key]
    entries: list[Any] = []
    for index, entry in enumerate(raw):
        try:
            entries.append(model.model_validate(entry))
        except ValidationError:
            _logger.warning("Dropping malformed %s entry #%d in %s", key.value, index, path, exc_info=True)
    return tuple(entries)
