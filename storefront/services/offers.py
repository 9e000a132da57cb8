# storefront/services/offers.py
"""Offer eligibility: which promotional tier a cart subtotal unlocks."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, NamedTuple

from ..utils.money import D

logger = logging.getLogger(__name__)

# highest first; probing only ever walks towards the end of this tuple
OFFER_TIERS = ("25000", "10000", "5000", "1000")

RANGE_DISPLAY_NAMES = {
    "1000": "Above ₹1,000",
    "5000": "Above ₹5,000",
    "10000": "Above ₹10,000",
    "25000": "Above ₹25,000",
}


class OfferResolution(NamedTuple):
    eligible_range: str | None
    effective_range: str | None
    products: list

    def as_api(self):
        return {
            "eligibleRange": self.eligible_range,
            "effectiveRange": self.effective_range,
            "label": RANGE_DISPLAY_NAMES.get(self.effective_range) if self.effective_range else None,
            "items": list(self.products),
        }


def eligible_range(subtotal, has_regular_item: bool) -> str | None:
    if not has_regular_item:
        return None
    subtotal = D(subtotal)
    if not subtotal.is_finite():
        return None
    for tier in OFFER_TIERS:
        if subtotal >= D(tier):
            return tier
    return None


def tiers_to_probe(start: str) -> tuple:
    return OFFER_TIERS[OFFER_TIERS.index(start):]


class OfferResolver:
    """Probes tiers downward from the eligible one until a tier has offers.

    Each call to ``resolve`` supersedes every earlier call that is still
    probing: the older call notices after its next fetch, returns ``None``
    and never touches ``current``.
    """

    def __init__(self, fetch_tier: Callable[[str], Iterable]):
        self._fetch_tier = fetch_tier
        self._lock = threading.Lock()
        self._generation = 0
        self.current = OfferResolution(None, None, [])
        self.fetch_count = 0

    def _is_stale(self, generation: int) -> bool:
        with self._lock:
            return generation != self._generation

    def _publish(self, generation: int, resolution: OfferResolution):
        with self._lock:
            if generation != self._generation:
                return None
            self.current = resolution
            return resolution

    def _fetch(self, tier: str) -> list:
        with self._lock:
            self.fetch_count += 1
        try:
            return list(self._fetch_tier(tier) or [])
        except Exception:
            logger.exception("Failed to fetch offer products for range %s", tier)
            return []

    def resolve(self, subtotal, has_regular_item: bool) -> OfferResolution | None:
        with self._lock:
            self._generation += 1
            generation = self._generation

        start = eligible_range(subtotal, has_regular_item)
        if start is None:
            return self._publish(generation, OfferResolution(None, None, []))

        for tier in tiers_to_probe(start):
            products = self._fetch(tier)
            if self._is_stale(generation):
                logger.debug("Discarding superseded offer probe at range %s", tier)
                return None
            if products:
                return self._publish(generation, OfferResolution(start, tier, products))

        return self._publish(generation, OfferResolution(start, None, []))
