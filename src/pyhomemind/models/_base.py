"""Base model for documents stored in the remote document store.

Every document model inherits from :class:`HomeBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase document keys map
  automatically to snake_case fields.
* Frozen instances; updates go through ``model_copy(update=...)`` so
  collections are replaced, never mutated in place.
* A ``model_validator(mode="before")`` that drops ``null`` values so the
  field default is used (documents written by older clients store
  ``"image": null`` and blank form fields as ``null``).
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Return a fresh random entity identifier."""
    return str(uuid.uuid4())


class HomeBaseModel(BaseModel):
    """Base for stored entities."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}

    def to_wire(self) -> dict[str, Any]:
        """Dump to the camelCase dict stored in the document."""
        return self.model_dump(by_alias=True, mode="json")
