"""The per-user persisted aggregate."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pyhomemind.models._base import HomeBaseModel
from pyhomemind.models.checklist import ChecklistEntry
from pyhomemind.models.item import Item
from pyhomemind.models.space import Space


class HomeDocument(HomeBaseModel):
    """Everything stored for one user (or one share token).

    Collections absent from the stored document parse as empty tuples, so
    legacy documents without ``repairs`` remain readable.
    """

    spaces: tuple[Space, ...] = ()
    items: tuple[Item, ...] = ()
    groceries: tuple[ChecklistEntry, ...] = ()
    repairs: tuple[ChecklistEntry, ...] = ()
    last_updated: int | None = Field(default=None, description="Epoch milliseconds of the last write")
    schema_version: int = 0

    def items_in(self, space_id: str) -> tuple[Item, ...]:
        return tuple(item for item in self.items if item.space_id == space_id)

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> HomeDocument:
        return cls.model_validate(data)
