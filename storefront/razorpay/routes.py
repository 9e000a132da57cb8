# storefront/razorpay/routes.py
import logging

from flask import current_app, jsonify, request

from ..extensions import db
from ..model import Order
from ..services.payment import PAYMENT_FIELDS, verify_payment
from ..utils.decorators import parse_uuid
from . import bp

logger = logging.getLogger(__name__)


def _reply(status, **body):
    r = jsonify(body); r.status_code = status; return r


@bp.post("/verify-payment")
def verify():
    """
    Gateway callback relayed by the client after checkout.

    Body: { razorpay_payment_id, razorpay_order_id, razorpay_signature, orderId, userId }
    Answers { message } on success and { error } otherwise.
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return _reply(400, error="Invalid request body")

    missing = [f for f in PAYMENT_FIELDS if not str(data.get(f) or "").strip()]
    if missing:
        return _reply(400, error=f"Missing fields: {', '.join(missing)}")

    order_id = parse_uuid(data["orderId"])
    user_id = parse_uuid(data["userId"])
    try:
        order = db.session.get(Order, order_id) if order_id else None
        if not order or user_id is None or order.user_id != user_id:
            return _reply(404, error="Order not found")

        outcome = verify_payment(
            order,
            user_id,
            str(data["razorpay_order_id"]),
            str(data["razorpay_payment_id"]),
            str(data["razorpay_signature"]),
            current_app.config["RAZORPAY_KEY_SECRET"],
        )
    except Exception:
        db.session.rollback()
        logger.exception("Payment verification failed for order %s", order_id)
        return _reply(500, error="Failed to verify payment")

    if not outcome.verified:
        return _reply(400, error="Invalid payment signature")
    return _reply(200, message="Payment verified successfully")
