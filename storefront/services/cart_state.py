# storefront/services/cart_state.py
"""Session-scoped cart state.

A ``CartSession`` holds one immutable ``CartSnapshot``. Every transition is a
command that builds a new snapshot and returns it in a ``CommandResult``
together with an error message when the command was rejected; a rejected
command leaves the current snapshot untouched.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Any

from ..utils.money import Money, to_float
from .pricing import COUPON_APPLIED, CartTotals, price_cart


@dataclass(frozen=True)
class CartLine:
    id: Any
    product_id: Any
    variant_id: Any
    quantity: int
    unit_price: Money
    mrp: Money
    offer_product_id: Any = None
    offer_price: Money | None = None
    name: str | None = None

    @property
    def is_offer_line(self) -> bool:
        return self.offer_product_id is not None

    def as_api(self):
        return {
            "id": str(self.id),
            "productId": str(self.product_id),
            "variantId": str(self.variant_id),
            "name": self.name,
            "quantity": self.quantity,
            "unitPrice": to_float(self.unit_price),
            "mrp": to_float(self.mrp),
            "cartOfferProductId": str(self.offer_product_id) if self.offer_product_id else None,
            "offerPrice": to_float(self.offer_price) if self.offer_product_id and self.offer_price is not None else None,
        }


@dataclass(frozen=True)
class CouponState:
    code: str
    ctype: str | None = None
    value: Money | None = None
    status: str = COUPON_APPLIED

    def as_api(self):
        return {
            "code": self.code,
            "type": self.ctype,
            "value": to_float(self.value) if self.value is not None else None,
            "status": self.status,
        }


@dataclass(frozen=True)
class CartSnapshot:
    items: tuple = ()
    coupon: CouponState | None = None

    @cached_property
    def totals(self) -> CartTotals:
        return price_cart(self.items, self.coupon)

    @property
    def has_regular_item(self) -> bool:
        return any(not line.is_offer_line for line in self.items)

    @property
    def has_offer_item(self) -> bool:
        return any(line.is_offer_line for line in self.items)

    def find(self, item_id):
        return next((line for line in self.items if str(line.id) == str(item_id)), None)

    def as_api(self):
        return {
            "items": [line.as_api() for line in self.items],
            "coupon": self.coupon.as_api() if self.coupon else None,
            "totals": self.totals.as_api(),
        }


@dataclass(frozen=True)
class CommandResult:
    snapshot: CartSnapshot
    error: str | None = None
    changed: tuple = field(default=())

    @property
    def ok(self) -> bool:
        return self.error is None


class CartSession:
    def __init__(self, snapshot: CartSnapshot | None = None):
        self._snapshot = snapshot or CartSnapshot()

    @property
    def snapshot(self) -> CartSnapshot:
        return self._snapshot

    def _commit(self, snapshot: CartSnapshot, *changed) -> CommandResult:
        self._snapshot = snapshot
        return CommandResult(snapshot, changed=changed)

    def _reject(self, message: str) -> CommandResult:
        return CommandResult(self._snapshot, error=message)

    def _replace_line(self, line: CartLine) -> CartSnapshot:
        items = tuple(line if str(l.id) == str(line.id) else l for l in self._snapshot.items)
        return replace(self._snapshot, items=items)

    # ---- commands ----------------------------------------------------------

    def add_item(self, line: CartLine) -> CommandResult:
        if not isinstance(line.quantity, int) or line.quantity < 1:
            return self._reject("quantity must be >= 1")
        existing = next(
            (l for l in self._snapshot.items
             if str(l.product_id) == str(line.product_id) and str(l.variant_id) == str(line.variant_id)),
            None,
        )
        if existing:
            merged = replace(existing, quantity=existing.quantity + line.quantity)
            return self._commit(self._replace_line(merged), merged)
        return self._commit(replace(self._snapshot, items=self._snapshot.items + (line,)), line)

    def update_quantity(self, item_id, quantity) -> CommandResult:
        line = self._snapshot.find(item_id)
        if line is None:
            return self._reject("item not found in this cart")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            return self._reject("quantity must be an integer >= 1")
        updated = replace(line, quantity=quantity)
        return self._commit(self._replace_line(updated), updated)

    def remove_item(self, item_id) -> CommandResult:
        line = self._snapshot.find(item_id)
        if line is None:
            return self._reject("item not found in this cart")
        items = tuple(l for l in self._snapshot.items if l is not line)
        return self._commit(replace(self._snapshot, items=items), line)

    def attach_offer(self, item_id, offer_product_id, offer_price) -> CommandResult:
        line = self._snapshot.find(item_id)
        if line is None:
            return self._reject("item not found in this cart")
        if line.is_offer_line:
            return self._reject("an offer product is already attached to this item")
        if self._snapshot.has_offer_item:
            return self._reject("cart already contains an offer product")
        updated = replace(line, offer_product_id=offer_product_id, offer_price=offer_price)
        return self._commit(self._replace_line(updated), updated)

    def detach_offer(self, item_id) -> CommandResult:
        line = self._snapshot.find(item_id)
        if line is None:
            return self._reject("item not found in this cart")
        if not line.is_offer_line:
            return self._reject("no offer product attached to this item")
        updated = replace(line, offer_product_id=None, offer_price=None)
        return self._commit(self._replace_line(updated), updated)

    def apply_coupon(self, coupon: CouponState) -> CommandResult:
        # a rejected coupon leaves the previously applied one in place
        if coupon.status != COUPON_APPLIED:
            return self._reject(coupon.status)
        return self._commit(replace(self._snapshot, coupon=coupon), coupon)

    def remove_coupon(self) -> CommandResult:
        if self._snapshot.coupon is None:
            return self._reject("no coupon applied")
        removed = self._snapshot.coupon
        return self._commit(replace(self._snapshot, coupon=None), removed)

    def clear(self) -> CommandResult:
        return self._commit(CartSnapshot(), *self._snapshot.items)
