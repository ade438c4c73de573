"""Snapshots, collection keys and session phases.

Every document store implementation converts what it reads into a
:class:`DocumentSnapshot`. Only the state layer is allowed to merge them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyhomemind._constants import GROCERIES_KEY, ITEMS_KEY, REPAIRS_KEY, SPACES_KEY


class CollectionKey(StrEnum):
    SPACES = SPACES_KEY
    ITEMS = ITEMS_KEY
    GROCERIES = GROCERIES_KEY
    REPAIRS = REPAIRS_KEY


class SessionPhase(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    AUTH_FAILED = "auth_failed"
    SUBSCRIBING = "subscribing"
    SYNCED = "synced"
    READ_ERROR = "read_error"


class DocumentSnapshot(BaseModel):
    """One observation of a remote document.

    ``data`` holds the decoded camelCase document exactly as stored; keys
    missing from it mean "unknown", not "empty".
    """

    model_config = ConfigDict(frozen=True)

    path: str
    exists: bool = True
    data: dict[str, Any] = Field(default_factory=dict)
    update_time: str | None = Field(default=None, description="Store-assigned revision marker")

    def present_collections(self) -> tuple[CollectionKey, ...]:
        return tuple(key for key in CollectionKey if key.value in self.data)
