import hashlib
import hmac
from decimal import Decimal

import pytest

from storefront.extensions import db
from storefront.model import CheckoutItem, Coupon, Order, Referral
from storefront.services.payment import signature_matches

SECRET = "test_razorpay_secret"


def payment_signature(order_id, payment_id, secret=SECRET):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def order(user, catalog):
    o = Order(user_id=user.id, razorpay_order_id="order_ABC123", subtotal=Decimal("2000"),
              discount_amount=0, shipping_amount=0, total=Decimal("2000"))
    db.session.add(o)
    db.session.add(CheckoutItem(user_id=user.id, product_id=catalog["product"].id,
                                variant_id=catalog["big"].id, total_price=Decimal("2000"), quantity=1))
    db.session.commit()
    return o


def payload(order, payment_id="pay_XYZ789", signature=None):
    return {
        "razorpay_order_id": order.razorpay_order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature or payment_signature(order.razorpay_order_id, payment_id, SECRET),
        "orderId": str(order.id),
        "userId": str(order.user_id),
    }


def reload(order):
    db.session.expire_all()
    return db.session.get(Order, order.id)


def test_signature_is_deterministic_hmac_sha256():
    a = payment_signature("order_1", "pay_1", SECRET)
    assert a == payment_signature("order_1", "pay_1", SECRET)
    assert a == hmac.new(SECRET.encode(), b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert a != payment_signature("order_1", "pay_2", SECRET)
    assert signature_matches("order_1", "pay_1", a, SECRET)


def test_valid_signature_marks_order_paid(client, order, user):
    resp = client.post("/api/razorpay/verify-payment", json=payload(order))
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "Payment verified successfully"}

    o = reload(order)
    assert o.payment_status == "paid"
    assert o.status == "confirmed"
    assert o.razorpay_payment_id == "pay_XYZ789"
    assert CheckoutItem.query.filter_by(user_id=user.id).count() == 0


def test_single_character_change_fails_verification(client, order):
    good = payload(order)["razorpay_signature"]
    flipped = ("0" if good[0] != "0" else "1") + good[1:]

    resp = client.post("/api/razorpay/verify-payment", json=payload(order, signature=flipped))
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid payment signature"}
    assert reload(order).payment_status == "failed"


def test_repeated_verification_is_idempotent(client, order):
    body = payload(order)
    first = client.post("/api/razorpay/verify-payment", json=body)
    second = client.post("/api/razorpay/verify-payment", json=body)
    assert first.status_code == second.status_code == 200

    o = reload(order)
    assert (o.payment_status, o.status) == ("paid", "confirmed")


def test_bad_signature_never_downgrades_paid_order(client, order):
    client.post("/api/razorpay/verify-payment", json=payload(order))
    resp = client.post("/api/razorpay/verify-payment", json=payload(order, signature="0" * 64))
    assert resp.status_code == 400
    assert reload(order).payment_status == "paid"


def test_missing_fields(client, order):
    body = payload(order)
    del body["razorpay_signature"]
    resp = client.post("/api/razorpay/verify-payment", json=body)
    assert resp.status_code == 400
    assert "razorpay_signature" in resp.get_json()["error"]


def test_unknown_order(client, order):
    body = payload(order)
    body["orderId"] = "00000000-0000-0000-0000-000000000000"
    resp = client.post("/api/razorpay/verify-payment", json=body)
    assert resp.status_code == 404


def test_unexpected_failure_is_rolled_back(client, order, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("db went away")

    monkeypatch.setattr("storefront.razorpay.routes.verify_payment", boom)
    resp = client.post("/api/razorpay/verify-payment", json=payload(order))
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to verify payment"}
    assert reload(order).payment_status == "pending"


def test_first_payment_uses_coupon_and_rewards_referrer(client, make_user, app):
    referrer = make_user()
    buyer = make_user()
    db.session.add(Referral(user_id=referrer.id, referral_code="PARENT01"))
    db.session.add(Referral(user_id=buyer.id, referral_code="CHILD001", referrer_id=referrer.id))
    db.session.add(Coupon(code="BUYER50", ctype="amount", value=50, user_id=buyer.id))
    o = Order(user_id=buyer.id, razorpay_order_id="order_REF", coupon_code="BUYER50",
              subtotal=Decimal("1000"), total=Decimal("950"))
    db.session.add(o)
    db.session.commit()

    body = payload(o, payment_id="pay_REF")
    assert client.post("/api/razorpay/verify-payment", json=body).status_code == 200
    assert client.post("/api/razorpay/verify-payment", json=body).status_code == 200

    db.session.expire_all()
    assert Coupon.query.filter_by(code="BUYER50").first().is_used
    ref = Referral.query.filter_by(user_id=buyer.id).first()
    assert ref.status == "completed"

    rewards = Coupon.query.filter_by(user_id=referrer.id).all()
    assert len(rewards) == 1
    assert rewards[0].code.startswith("REF")
    assert rewards[0].ctype == "amount"
    assert Decimal(rewards[0].value) == Decimal(app.config["REFERRAL_REWARD_AMOUNT"])
    assert rewards[0].expires_at is not None


def test_lookup_failure_answers_error_body(client, order, monkeypatch):
    def broken_get(*args, **kwargs):
        raise RuntimeError("connection reset")

    body = payload(order)
    monkeypatch.setattr(db.session, "get", broken_get)
    resp = client.post("/api/razorpay/verify-payment", json=body)
    monkeypatch.undo()

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to verify payment"}


def test_non_object_body_is_rejected(client, order):
    for body in (["x"], "pay_XYZ789", 42):
        resp = client.post("/api/razorpay/verify-payment", json=body)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid request body"}
    assert reload(order).payment_status == "pending"
