"""Document store contract and hierarchical document paths."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from pyhomemind.state.events import DocumentSnapshot

SnapshotHandler = Callable[[DocumentSnapshot], None]
ErrorHandler = Callable[[BaseException], None]

_ROOT = "artifacts"


@dataclass(frozen=True)
class DocumentPath:
    """``artifacts/{app_id}/{scope...}/{collection}/{document}``.

    Private documents live under ``users/{uid}/personal/settings``; shared
    read-only documents under ``public/data/shares/{token}``.
    """

    app_id: str
    scope: tuple[str, ...]
    collection: str
    document: str

    def __post_init__(self) -> None:
        for segment in (self.app_id, *self.scope, self.collection, self.document):
            if not segment or "/" in segment:
                raise ValueError(f"Invalid document path segment: {segment!r}")

    @classmethod
    def private(cls, app_id: str, uid: str) -> DocumentPath:
        return cls(app_id=app_id, scope=("users", uid), collection="personal", document="settings")

    @classmethod
    def shared(cls, app_id: str, token: str) -> DocumentPath:
        return cls(app_id=app_id, scope=("public", "data"), collection="shares", document=token)

    @property
    def is_public(self) -> bool:
        return self.scope[:1] == ("public",)

    @property
    def segments(self) -> tuple[str, ...]:
        return (_ROOT, self.app_id, *self.scope, self.collection, self.document)

    def __str__(self) -> str:
        return "/".join(self.segments)


class Subscription(Protocol):
    """Handle returned by :meth:`DocumentStore.subscribe`."""

    @property
    def active(self) -> bool: ...

    def close(self) -> None: ...


class DocumentStore(Protocol):
    """Remote key-document database addressed by path."""

    async def get(self, path: DocumentPath) -> DocumentSnapshot:
        """Read the current document (``exists=False`` when there is none)."""
        ...

    async def merge_write(self, path: DocumentPath, data: Mapping[str, Any]) -> None:
        """Write only the given top-level keys, creating the document if needed."""
        ...

    def subscribe(
        self,
        path: DocumentPath,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Subscription:
        """Deliver the current snapshot and every later change until closed.

        ``on_error`` is called at most once; the subscription is inactive
        afterwards.
        """
        ...
