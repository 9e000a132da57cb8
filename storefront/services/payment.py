# storefront/services/payment.py
"""Razorpay callback verification."""
from __future__ import annotations

import logging
from dataclasses import dataclass

import razorpay

from ..extensions import db
from ..model import CheckoutItem, Order
from ..model.types import utcnow
from .coupon_service import mark_coupon_used
from .referral_service import complete_referral

logger = logging.getLogger(__name__)

PAYMENT_FIELDS = ("razorpay_payment_id", "razorpay_order_id", "razorpay_signature", "orderId", "userId")


def signature_matches(order_id, payment_id, signature, secret) -> bool:
    # only the secret half of the key pair is used for verification
    client = razorpay.Client(auth=("", secret))
    try:
        client.utility.verify_payment_signature({
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": str(signature or ""),
        })
    except razorpay.errors.SignatureVerificationError:
        return False
    return True


@dataclass(frozen=True)
class PaymentOutcome:
    verified: bool
    order: Order


def verify_payment(order: Order, user_id, razorpay_order_id, razorpay_payment_id,
                   razorpay_signature, secret) -> PaymentOutcome:
    """Apply the gateway callback to ``order`` and commit.

    Safe to replay: a paid order is never downgraded to failed, reapplying
    paid/confirmed changes nothing, and clearing an empty staging set is a
    no-op.
    """
    now = utcnow()
    if not signature_matches(razorpay_order_id, razorpay_payment_id, razorpay_signature, secret):
        updated = (
            Order.query
            .filter(Order.id == order.id, Order.payment_status != "paid")
            .update({"payment_status": "failed", "updated_at": now}, synchronize_session="fetch")
        )
        db.session.commit()
        logger.warning("Invalid payment signature for order %s (rows updated: %s)", order.id, updated)
        return PaymentOutcome(False, order)

    first_payment = order.payment_status != "paid"
    Order.query.filter(Order.id == order.id).update({
        "payment_status": "paid",
        "status": "confirmed",
        "razorpay_payment_id": razorpay_payment_id,
        "updated_at": now,
    }, synchronize_session="fetch")

    CheckoutItem.query.filter(CheckoutItem.user_id == user_id).delete(synchronize_session=False)

    if first_payment:
        mark_coupon_used(order.coupon_code, order.user_id)
        complete_referral(order.user_id)

    db.session.commit()
    logger.info("Payment %s verified for order %s", razorpay_payment_id, order.id)
    return PaymentOutcome(True, order)
