"""Pure collection updates.

Every function takes the current collection value (a tuple of frozen
models) and returns a new tuple; nothing is modified in place. The client
applies the result to the local cache and persists only the collections a
mutation touched.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from pyhomemind._constants import DEFAULT_ITEM_NAME
from pyhomemind.exceptions import HomeMindEntityNotFoundError
from pyhomemind.models._base import HomeBaseModel, new_id
from pyhomemind.models.checklist import ChecklistEntry
from pyhomemind.models.item import Item, Option
from pyhomemind.models.space import Space

M = TypeVar("M", bound=HomeBaseModel)

_IMMUTABLE_FIELDS = frozenset({"id"})


def _index_of(values: Sequence[Any], entity_id: str, kind: str) -> int:
    for index, value in enumerate(values):
        if value.id == entity_id:
            return index
    raise HomeMindEntityNotFoundError(kind, entity_id)


def _updated(model: M, fields: dict[str, Any]) -> M:
    """Validated copy of *model* with *fields* applied."""
    unknown = set(fields) - set(type(model).model_fields)
    if unknown:
        raise ValueError(f"Unknown {type(model).__name__} fields: {sorted(unknown)}")
    forbidden = set(fields) & _IMMUTABLE_FIELDS
    if forbidden:
        raise ValueError(f"Cannot change {sorted(forbidden)}")
    return type(model).model_validate({**model.model_dump(), **fields})


def _replace_at(values: Sequence[M], index: int, value: M) -> tuple[M, ...]:
    return (*values[:index], value, *values[index + 1 :])


def _remove_at(values: Sequence[M], index: int) -> tuple[M, ...]:
    return (*values[:index], *values[index + 1 :])


# ----------------------------------------------------------------------
# Spaces
# ----------------------------------------------------------------------


def add_space(spaces: Sequence[Space], name: str = "") -> tuple[tuple[Space, ...], Space]:
    space = Space(id=new_id(), name=name)
    return (*spaces, space), space


def update_space(spaces: Sequence[Space], space_id: str, **fields: Any) -> tuple[Space, ...]:
    index = _index_of(spaces, space_id, "space")
    return _replace_at(spaces, index, _updated(spaces[index], fields))


def delete_space(spaces: Sequence[Space], space_id: str) -> tuple[Space, ...]:
    return _remove_at(spaces, _index_of(spaces, space_id, "space"))


# ----------------------------------------------------------------------
# Items
# ----------------------------------------------------------------------


def add_item(items: Sequence[Item], space_id: str, name: str = DEFAULT_ITEM_NAME) -> tuple[tuple[Item, ...], Item]:
    item = Item(id=new_id(), space_id=space_id, name=name, order=len(items))
    return (*items, item), item


def update_item(items: Sequence[Item], item_id: str, **fields: Any) -> tuple[Item, ...]:
    if "options" in fields:
        raise ValueError("Use the option operations to change an item's options")
    index = _index_of(items, item_id, "item")
    return _replace_at(items, index, _updated(items[index], fields))


def delete_item(items: Sequence[Item], item_id: str) -> tuple[Item, ...]:
    return _remove_at(items, _index_of(items, item_id, "item"))


def delete_items_in_space(items: Sequence[Item], space_id: str) -> tuple[Item, ...]:
    return tuple(item for item in items if item.space_id != space_id)


def find_item(items: Sequence[Item], item_id: str) -> Item:
    return items[_index_of(items, item_id, "item")]


# ----------------------------------------------------------------------
# Options
# ----------------------------------------------------------------------


def _with_options(items: Sequence[Item], index: int, options: Sequence[Option]) -> tuple[Item, ...]:
    return _replace_at(items, index, items[index].model_copy(update={"options": tuple(options)}))


def _option_index(item: Item, option_id: str) -> int:
    for index, option in enumerate(item.options):
        if option.id == option_id:
            return index
    raise HomeMindEntityNotFoundError("option", option_id)


def add_option(items: Sequence[Item], item_id: str) -> tuple[tuple[Item, ...], Option]:
    index = _index_of(items, item_id, "item")
    option = Option(id=new_id())
    return _with_options(items, index, (*items[index].options, option)), option


def update_option(items: Sequence[Item], item_id: str, option_id: str, **fields: Any) -> tuple[Item, ...]:
    """Update one option; ``winner=True`` clears every sibling's winner flag."""
    index = _index_of(items, item_id, "item")
    item = items[index]
    target = _option_index(item, option_id)
    updated = _updated(item.options[target], fields)

    options = list(item.options)
    options[target] = updated
    if updated.winner:
        options = [
            option.model_copy(update={"winner": False}) if i != target and option.winner else option
            for i, option in enumerate(options)
        ]
    return _with_options(items, index, options)


def toggle_option_winner(items: Sequence[Item], item_id: str, option_id: str) -> tuple[Item, ...]:
    item = find_item(items, item_id)
    option = item.options[_option_index(item, option_id)]
    return update_option(items, item_id, option_id, winner=not option.winner)


def delete_option(items: Sequence[Item], item_id: str, option_id: str) -> tuple[Item, ...]:
    index = _index_of(items, item_id, "item")
    item = items[index]
    return _with_options(items, index, _remove_at(item.options, _option_index(item, option_id)))


def move_option(options: Sequence[Option], from_index: int, to_index: int) -> tuple[Option, ...]:
    """Splice the option at *from_index* out and reinsert it at *to_index*."""
    size = len(options)
    if not 0 <= from_index < size:
        raise IndexError(f"from_index {from_index} out of range for {size} options")
    if not 0 <= to_index < size:
        raise IndexError(f"to_index {to_index} out of range for {size} options")
    working = list(options)
    moved = working.pop(from_index)
    working.insert(to_index, moved)
    return tuple(working)


def move_item_option(items: Sequence[Item], item_id: str, from_index: int, to_index: int) -> tuple[Item, ...]:
    index = _index_of(items, item_id, "item")
    return _with_options(items, index, move_option(items[index].options, from_index, to_index))


def backfill_option_ids(items: Sequence[Item], item_id: str) -> tuple[tuple[Item, ...], bool]:
    """Give every option of one item an id. Returns ``(items, changed)``."""
    index = _index_of(items, item_id, "item")
    item = items[index]
    if not item.needs_option_ids:
        return tuple(items), False
    options = [option if option.id else option.model_copy(update={"id": new_id()}) for option in item.options]
    return _with_options(items, index, options), True


# ----------------------------------------------------------------------
# Checklists
# ----------------------------------------------------------------------


def add_entry(entries: Sequence[ChecklistEntry], text: str = "") -> tuple[tuple[ChecklistEntry, ...], ChecklistEntry]:
    """Prepend a new entry (newest first)."""
    entry = ChecklistEntry(id=new_id(), text=text)
    return (entry, *entries), entry


def update_entry(entries: Sequence[ChecklistEntry], entry_id: str, **fields: Any) -> tuple[ChecklistEntry, ...]:
    index = _index_of(entries, entry_id, "entry")
    return _replace_at(entries, index, _updated(entries[index], fields))


def delete_entry(entries: Sequence[ChecklistEntry], entry_id: str) -> tuple[ChecklistEntry, ...]:
    return _remove_at(entries, _index_of(entries, entry_id, "entry"))
