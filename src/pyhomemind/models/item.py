"""Item and purchase option models."""

from __future__ import annotations

from pydantic import Field

from pyhomemind._constants import DEFAULT_ITEM_NAME
from pyhomemind.models._base import HomeBaseModel, new_id


class Option(HomeBaseModel):
    """One candidate purchase for an item.

    ``id`` is optional only because documents written before identifiers
    were mandatory contain options without one; the schema upgrade in
    :mod:`pyhomemind.state.migrations` backfills it on load.
    """

    id: str | None = None
    model: str = ""
    price: str = ""
    store: str = ""
    link: str = ""
    notes: str = ""
    winner: bool = False
    image: str | None = None

    @property
    def price_value(self) -> float | None:
        """The entered price as a number, or ``None`` when it does not parse."""
        text = self.price.strip().replace(",", "").lstrip("$€£").strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None


class Item(HomeBaseModel):
    """A thing to buy or own, belonging to one space."""

    id: str = Field(default_factory=new_id)
    space_id: str
    name: str = DEFAULT_ITEM_NAME
    options: tuple[Option, ...] = ()
    image: str | None = None
    order: int = 0

    @property
    def winner(self) -> Option | None:
        """The option marked as winner, if any."""
        return next((option for option in self.options if option.winner), None)

    @property
    def needs_option_ids(self) -> bool:
        return any(not option.id for option in self.options)
