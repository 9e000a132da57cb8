# storefront/services/pricing.py
"""
Cart pricing.

Every derived number is computed from an immutable sequence of cart lines,
so a total is never read against a half-updated cart:

  subtotal  = sum((unit_price + offer_price) * qty)
  savings   = sum((mrp - unit_price) * qty)          offer price excluded
  discount  = coupon_discount(coupon, subtotal)
  shipping  = 0 when subtotal > FREE_SHIPPING_THRESHOLD, else SHIPPING_FEE_PER_UNIT * units
  total     = subtotal - discount + shipping
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..utils.money import D, Money, round_money, to_float

FREE_SHIPPING_THRESHOLD = Decimal("500")
SHIPPING_FEE_PER_UNIT = Decimal("50")

COUPON_APPLIED = "applied"
COUPON_TYPES = ("amount", "percent")


def coupon_discount(coupon, subtotal) -> Money:
    """Discount granted by ``coupon`` on ``subtotal``.

    Only a coupon whose status is ``applied`` counts. A missing value on an
    applied coupon yields zero instead of raising. The result is not capped
    at the subtotal.
    """
    if coupon is None or getattr(coupon, "status", None) != COUPON_APPLIED:
        return D(0)
    if coupon.value is None:
        return D(0)
    value = D(coupon.value)
    if not value.is_finite():
        return D(0)

    if coupon.ctype == "amount":
        amount = value
    elif coupon.ctype == "percent":
        amount = D(subtotal) * value / D(100)
    else:
        return D(0)
    if not amount.is_finite():
        return D(0)
    return max(D(0), round_money(amount))


def line_unit_price(line) -> Money:
    offer = D(line.offer_price) if line.offer_product_id else D(0)
    return D(line.unit_price) + offer

def line_total(line) -> Money:
    return line_unit_price(line) * D(line.quantity)


def shipping_amount(subtotal, quantities) -> Money:
    subtotal = D(subtotal)
    if subtotal.is_finite() and subtotal > FREE_SHIPPING_THRESHOLD:
        return D(0)
    return round_money(sum((SHIPPING_FEE_PER_UNIT * int(q) for q in quantities), D(0)))


@dataclass(frozen=True)
class CartTotals:
    subtotal: Money
    savings: Money
    discount_amount: Money
    shipping_amount: Money
    grand_total: Money
    item_count: int

    def as_api(self):
        return {
            "subtotal": to_float(self.subtotal),
            "savings": to_float(self.savings),
            "discount_amount": to_float(self.discount_amount),
            "shipping_amount": to_float(self.shipping_amount),
            "grand_total": to_float(self.grand_total),
            "item_count": self.item_count,
        }


def price_cart(lines, coupon=None) -> CartTotals:
    lines = tuple(lines)
    subtotal = round_money(sum((line_total(l) for l in lines), D(0)))
    savings = round_money(sum(((D(l.mrp) - D(l.unit_price)) * D(l.quantity) for l in lines), D(0)))
    discount = coupon_discount(coupon, subtotal)
    shipping = shipping_amount(subtotal, (l.quantity for l in lines))
    return CartTotals(
        subtotal=subtotal,
        savings=savings,
        discount_amount=discount,
        shipping_amount=shipping,
        grand_total=round_money(subtotal - discount + shipping),
        item_count=sum(int(l.quantity) for l in lines),
    )
