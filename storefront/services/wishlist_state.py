# storefront/services/wishlist_state.py
"""Wishlist mutations with compensation.

Changes are applied to an immutable ``WishlistState`` first. The remote write
runs next, and if it fails the inverse change is replayed: a removed entry is
reinserted at the position given by its ``created_at`` key, newest first.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WishlistEntry:
    product_id: Any
    variant_id: Any
    created_at: datetime
    payload: Any = None

    def key(self):
        return (str(self.product_id), str(self.variant_id))


def _ordered(entries):
    return tuple(sorted(entries, key=lambda e: e.created_at, reverse=True))


@dataclass(frozen=True)
class WishlistState:
    entries: tuple = ()

    @classmethod
    def of(cls, entries):
        return cls(_ordered(entries))

    @property
    def count(self) -> int:
        return len(self.entries)

    def find(self, product_id, variant_id):
        key = (str(product_id), str(variant_id))
        return next((e for e in self.entries if e.key() == key), None)

    def contains(self, product_id, variant_id) -> bool:
        return self.find(product_id, variant_id) is not None

    def without(self, entry: WishlistEntry) -> "WishlistState":
        return replace(self, entries=tuple(e for e in self.entries if e.key() != entry.key()))

    def with_entry(self, entry: WishlistEntry) -> "WishlistState":
        return replace(self, entries=_ordered(self.without(entry).entries + (entry,)))


@dataclass(frozen=True)
class WishlistChange:
    state: WishlistState
    ok: bool
    entry: WishlistEntry | None = None
    error: Exception | None = None


def remove_entry(state: WishlistState, product_id, variant_id,
                 remote_remove: Callable[[WishlistEntry], Any]) -> WishlistChange:
    entry = state.find(product_id, variant_id)
    if entry is None:
        return WishlistChange(state, True)

    tentative = state.without(entry)
    try:
        remote_remove(entry)
    except Exception as e:
        logger.warning("Wishlist removal of %s failed, restoring entry: %s", entry.key(), e)
        return WishlistChange(tentative.with_entry(entry), False, entry, e)
    return WishlistChange(tentative, True, entry)


def add_entry(state: WishlistState, product_id, variant_id,
              remote_add: Callable[[], WishlistEntry]) -> WishlistChange:
    existing = state.find(product_id, variant_id)
    if existing is not None:
        return WishlistChange(state, True, existing)
    try:
        entry = remote_add()
    except Exception as e:
        logger.warning("Wishlist add of %s/%s failed: %s", product_id, variant_id, e)
        return WishlistChange(state, False, None, e)
    return WishlistChange(state.with_entry(entry), True, entry)
