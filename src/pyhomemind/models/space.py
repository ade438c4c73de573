"""Space (room) model."""

from __future__ import annotations

from pydantic import Field

from pyhomemind._constants import DEFAULT_SPACES
from pyhomemind.models._base import HomeBaseModel, new_id


class Space(HomeBaseModel):
    """A named physical area owning zero or more items."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    image: str | None = None
    """Inline ``data:`` URL, if an image was set."""


def default_spaces() -> tuple[Space, ...]:
    """The spaces a session starts with before any document is loaded."""
    return tuple(Space(id=space_id, name=name) for space_id, name in DEFAULT_SPACES)
