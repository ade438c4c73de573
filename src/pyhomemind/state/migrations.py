"""Versioned schema upgrades applied to every loaded document.

Each step takes the raw camelCase document and returns the collections it
rewrote. Steps only touch collections present in the document, so the
sparse-merge contract of snapshots is preserved: a key missing from the
stored document stays missing after the upgrade.

Steps are idempotent; running the upgrade twice produces the same data.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pyhomemind._constants import ITEMS_KEY, SCHEMA_VERSION, SCHEMA_VERSION_KEY
from pyhomemind.models._base import new_id
from pyhomemind.state.events import CollectionKey

_logger = logging.getLogger(__name__)

_Step = Callable[[dict[str, Any]], set[CollectionKey]]


@dataclass(frozen=True)
class UpgradeResult:
    """Outcome of :func:`upgrade_document`."""

    data: dict[str, Any]
    from_version: int
    to_version: int
    changed: tuple[CollectionKey, ...] = ()

    @property
    def upgraded(self) -> bool:
        return self.from_version != self.to_version or bool(self.changed)


def _backfill_item_fields(data: dict[str, Any]) -> set[CollectionKey]:
    """v0 -> v1: every option gets an ``id``; every item gets an ``order``."""
    items = data.get(ITEMS_KEY)
    if not isinstance(items, list):
        return set()

    changed = False
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        if not isinstance(item.get("order"), int):
            item["order"] = index
            changed = True
        options = item.get("options")
        if options is None:
            item["options"] = []
            changed = True
            continue
        if not isinstance(options, list):
            continue
        for option in options:
            if isinstance(option, dict) and not option.get("id"):
                option["id"] = new_id()
                changed = True
    return {CollectionKey.ITEMS} if changed else set()


_STEPS: dict[int, _Step] = {
    1: _backfill_item_fields,
}


def document_version(data: dict[str, Any]) -> int:
    value = data.get(SCHEMA_VERSION_KEY)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def upgrade_document(data: dict[str, Any], *, target: int = SCHEMA_VERSION) -> UpgradeResult:
    """Return a canonical copy of *data* upgraded to *target*.

    The input dict is never modified. Documents already at or past
    *target* are returned unchanged (a newer writer owns their format).
    """
    working = copy.deepcopy(data)
    current = document_version(working)
    if current >= target:
        return UpgradeResult(data=working, from_version=current, to_version=current)

    changed: set[CollectionKey] = set()
    for version in range(current + 1, target + 1):
        step = _STEPS.get(version)
        if step is not None:
            changed |= step(working)
        _logger.debug("Document schema upgraded to v%d changed=%s", version, sorted(changed))
    working[SCHEMA_VERSION_KEY] = target

    ordered = tuple(key for key in CollectionKey if key in changed)
    return UpgradeResult(data=working, from_version=current, to_version=target, changed=ordered)
