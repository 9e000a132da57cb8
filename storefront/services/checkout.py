# storefront/services/checkout.py
"""Cart -> checkout staging handoff.

Lines are submitted one at a time in cart order. The first failure stops the
run; lines submitted before it stay submitted (no compensation) and the cart
is left intact so the user can retry. Only a fully successful run clears the
cart, in one call.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import urlencode

from ..errors import ValidationError
from ..utils.money import D, Money, to_float
from .cart_state import CartSnapshot
from .pricing import COUPON_APPLIED, line_total

logger = logging.getLogger(__name__)

CHECKOUT_PATH = "/checkout"


@dataclass(frozen=True)
class CheckoutLineItem:
    user_id: Any
    product_id: Any
    variant_id: Any
    total_price: Money
    quantity: int
    cart_offer_product_id: Any = None

    def as_api(self):
        return {
            "userId": str(self.user_id),
            "productId": str(self.product_id),
            "variantId": str(self.variant_id),
            "totalPrice": to_float(self.total_price),
            "quantity": self.quantity,
            "cartOfferProductId": str(self.cart_offer_product_id) if self.cart_offer_product_id else None,
        }


class CheckoutHandoffError(Exception):
    def __init__(self, message, completed=(), failed_line=None):
        super().__init__(message)
        self.message = message
        self.completed = list(completed)
        self.failed_line = failed_line


class CheckoutValidationError(ValidationError):
    """A cart line whose price is not a finite number."""

    def __init__(self, message, completed=(), failed_line=None):
        super().__init__(message)
        self.completed = list(completed)
        self.failed_line = failed_line


@dataclass
class HandoffResult:
    redirect_to: str
    completed: list = field(default_factory=list)

    def as_api(self):
        return {
            "redirect_to": self.redirect_to,
            "submitted": [c.as_api() for c in self.completed],
        }


def build_line_item(user_id, line) -> CheckoutLineItem:
    total = line_total(line)
    if not total.is_finite():
        raise CheckoutValidationError(f"Invalid price for item {line.product_id}")
    return CheckoutLineItem(
        user_id=user_id,
        product_id=line.product_id,
        variant_id=line.variant_id,
        total_price=total,
        quantity=line.quantity,
        cart_offer_product_id=line.offer_product_id,
    )


def checkout_redirect(snapshot: CartSnapshot) -> str:
    c = snapshot.coupon
    if c is None or c.status != COUPON_APPLIED or c.value is None:
        return CHECKOUT_PATH
    query = urlencode({
        "coupon": c.code,
        "discountType": c.ctype,
        "discountValue": format(D(c.value).normalize(), "f"),
    })
    return f"{CHECKOUT_PATH}?{query}"


def hand_off(snapshot: CartSnapshot, user_id,
             submit: Callable[[CheckoutLineItem], Any],
             clear_cart: Callable[[], Any]) -> HandoffResult:
    if not snapshot.items:
        raise ValidationError("Your cart is empty")

    completed: list[CheckoutLineItem] = []
    for line in snapshot.items:
        try:
            item = build_line_item(user_id, line)
        except CheckoutValidationError as e:
            logger.warning("Checkout aborted for user %s: %s", user_id, e.message)
            raise CheckoutValidationError(e.message, completed, line) from e
        try:
            submit(item)
        except Exception as e:
            logger.exception("Checkout submission failed for user %s after %d item(s)", user_id, len(completed))
            raise CheckoutHandoffError(
                "Failed to proceed to checkout. Please try again.", completed, line
            ) from e
        completed.append(item)

    clear_cart()
    logger.info("User %s handed %d item(s) to checkout", user_id, len(completed))
    return HandoffResult(redirect_to=checkout_redirect(snapshot), completed=completed)
