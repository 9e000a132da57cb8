from decimal import Decimal

import pytest

from conftest import data_of
from storefront.errors import ValidationError
from storefront.extensions import db
from storefront.model import CartItem, CheckoutItem
from storefront.services.cart_state import CartLine, CartSnapshot, CouponState
from storefront.services.checkout import (
    CheckoutHandoffError, CheckoutValidationError, checkout_redirect, hand_off,
)


def make_line(id_, unit="100", qty=1, offer_price=None):
    return CartLine(
        id=id_, product_id=f"p{id_}", variant_id=f"v{id_}", quantity=qty,
        unit_price=Decimal(unit), mrp=Decimal(unit),
        offer_product_id=f"o{id_}" if offer_price is not None else None,
        offer_price=Decimal(offer_price) if offer_price is not None else None,
    )


class Recorder:
    def __init__(self, fail_on=None):
        self.submitted = []
        self.cleared = 0
        self.fail_on = fail_on

    def submit(self, item):
        if self.fail_on is not None and item.product_id == self.fail_on:
            raise RuntimeError("staging insert failed")
        self.submitted.append(item)

    def clear(self):
        self.cleared += 1


def test_hand_off_submits_in_order_and_clears_once():
    snap = CartSnapshot(items=(make_line(1, "200", 2, offer_price="49"), make_line(2, "50")))
    rec = Recorder()
    result = hand_off(snap, "u1", rec.submit, rec.clear)

    assert [i.product_id for i in rec.submitted] == ["p1", "p2"]
    assert rec.submitted[0].total_price == Decimal("498")
    assert rec.submitted[0].cart_offer_product_id == "o1"
    assert rec.submitted[1].total_price == Decimal("50")
    assert rec.cleared == 1
    assert result.redirect_to == "/checkout"
    assert len(result.completed) == 2


def test_non_finite_price_aborts_without_clearing():
    snap = CartSnapshot(items=(make_line(1), make_line(2, unit="NaN"), make_line(3)))
    rec = Recorder()
    with pytest.raises(CheckoutValidationError) as exc:
        hand_off(snap, "u1", rec.submit, rec.clear)

    assert [i.product_id for i in rec.submitted] == ["p1"]
    assert rec.cleared == 0
    assert [i.product_id for i in exc.value.completed] == ["p1"]
    assert exc.value.failed_line.id == 2


def test_submit_failure_reports_completed_steps():
    snap = CartSnapshot(items=(make_line(1), make_line(2), make_line(3)))
    rec = Recorder(fail_on="p2")
    with pytest.raises(CheckoutHandoffError) as exc:
        hand_off(snap, "u1", rec.submit, rec.clear)

    # already submitted lines are not rolled back
    assert [i.product_id for i in rec.submitted] == ["p1"]
    assert [i.product_id for i in exc.value.completed] == ["p1"]
    assert rec.cleared == 0


def test_empty_cart_is_rejected():
    rec = Recorder()
    with pytest.raises(ValidationError):
        hand_off(CartSnapshot(), "u1", rec.submit, rec.clear)
    assert rec.cleared == 0


def test_redirect_carries_applied_coupon():
    snap = CartSnapshot(
        items=(make_line(1),),
        coupon=CouponState(code="SAVE10", ctype="percent", value=Decimal("10.00")),
    )
    assert checkout_redirect(snap) == "/checkout?coupon=SAVE10&discountType=percent&discountValue=10"


def test_redirect_ignores_unapplied_coupon():
    snap = CartSnapshot(
        items=(make_line(1),),
        coupon=CouponState(code="OLD", ctype="amount", value=Decimal("50"), status="expired"),
    )
    assert checkout_redirect(snap) == "/checkout"


def test_checkout_route_stages_items_and_clears_cart(client, headers, user, catalog):
    client.post("/api/cart/items", json={"variant_id": str(catalog["big"].id), "quantity": 1}, headers=headers)
    client.post("/api/cart/items", json={"variant_id": str(catalog["small"].id), "quantity": 2}, headers=headers)

    resp = client.post("/api/cart/checkout", headers=headers)
    assert resp.status_code == 200
    body = data_of(resp)
    assert body["redirect_to"] == "/checkout"
    assert [i["totalPrice"] for i in body["submitted"]] == [2000.0, 600.0]

    db.session.expire_all()
    assert CheckoutItem.query.filter_by(user_id=user.id).count() == 2
    assert CartItem.query.filter_by(user_id=user.id).count() == 0


def test_checkout_route_rejects_empty_cart(client, headers):
    resp = client.post("/api/cart/checkout", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["status"] is False
