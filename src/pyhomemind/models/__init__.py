"""Data models for documents stored by pyhomemind."""

from pyhomemind.models._base import HomeBaseModel, new_id
from pyhomemind.models.checklist import ChecklistEntry
from pyhomemind.models.document import HomeDocument
from pyhomemind.models.identity import Identity
from pyhomemind.models.item import Item, Option
from pyhomemind.models.space import Space, default_spaces

__all__ = [
    "ChecklistEntry",
    "HomeBaseModel",
    "HomeDocument",
    "Identity",
    "Item",
    "Option",
    "Space",
    "default_spaces",
    "new_id",
]
