"""Case-insensitive substring search over the local collections.

Results keep the order of the source collections; match reasons are for
highlighting only and never affect ordering.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pyhomemind.models.checklist import ChecklistEntry
from pyhomemind.models.item import Item
from pyhomemind.models.space import Space


class MatchField(StrEnum):
    NAME = "name"
    OPTION_MODEL = "option_model"
    OPTION_STORE = "option_store"


class MatchReason(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: MatchField
    option_id: str | None = None
    option_index: int | None = None


class SearchResults(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str = ""
    spaces: tuple[Space, ...] = ()
    items: tuple[Item, ...] = ()
    groceries: tuple[ChecklistEntry, ...] = ()
    repairs: tuple[ChecklistEntry, ...] = ()
    reasons: dict[str, tuple[MatchReason, ...]] = Field(default_factory=dict)
    """Match reasons keyed by item id."""

    def reasons_for(self, item_id: str) -> tuple[MatchReason, ...]:
        return self.reasons.get(item_id, ())


def _contains(text: str | None, needle: str) -> bool:
    return needle in (text or "").lower()


def item_match_reasons(item: Item, query: str) -> tuple[MatchReason, ...]:
    """Which fields of *item* contain *query*: name first, then options in order."""
    needle = query.strip().lower()
    if not needle:
        return ()
    reasons: list[MatchReason] = []
    if _contains(item.name, needle):
        reasons.append(MatchReason(field=MatchField.NAME))
    for index, option in enumerate(item.options):
        if _contains(option.model, needle):
            reasons.append(MatchReason(field=MatchField.OPTION_MODEL, option_id=option.id, option_index=index))
        if _contains(option.store, needle):
            reasons.append(MatchReason(field=MatchField.OPTION_STORE, option_id=option.id, option_index=index))
    return tuple(reasons)


def search(
    spaces: Sequence[Space],
    items: Sequence[Item],
    groceries: Sequence[ChecklistEntry] = (),
    repairs: Sequence[ChecklistEntry] = (),
    query: str = "",
) -> SearchResults:
    """Filter every collection by *query*.

    A space matches on its name or when any of its items matches. A blank
    query matches everything.
    """
    needle = query.strip().lower()
    if not needle:
        return SearchResults(
            query=query,
            spaces=tuple(spaces),
            items=tuple(items),
            groceries=tuple(groceries),
            repairs=tuple(repairs),
        )

    reasons: dict[str, tuple[MatchReason, ...]] = {}
    matched_items: list[Item] = []
    for item in items:
        found = item_match_reasons(item, needle)
        if found:
            matched_items.append(item)
            reasons[item.id] = found

    spaces_with_hits = {item.space_id for item in matched_items}
    matched_spaces = tuple(space for space in spaces if _contains(space.name, needle) or space.id in spaces_with_hits)

    return SearchResults(
        query=query,
        spaces=matched_spaces,
        items=tuple(matched_items),
        groceries=tuple(entry for entry in groceries if _contains(entry.text, needle)),
        repairs=tuple(entry for entry in repairs if _contains(entry.text, needle)),
        reasons=reasons,
    )
