"""Checklist entry model (groceries and repairs)."""

from __future__ import annotations

from pydantic import Field

from pyhomemind.models._base import HomeBaseModel, new_id


class ChecklistEntry(HomeBaseModel):
    id: str = Field(default_factory=new_id)
    text: str = ""
    completed: bool = False
