# storefront/order/routes.py
import logging

from flask import request

from ..errors import NotFoundError
from ..extensions import db
from ..model import CheckoutItem, Order, OrderItem
from ..services.coupon_service import COUPON_MESSAGES, evaluate_coupon
from ..services.pricing import COUPON_APPLIED, coupon_discount, shipping_amount
from ..utils.api import ok, err
from ..utils.decorators import login_required, parse_uuid
from ..utils.money import D, round_money
from . import bp

logger = logging.getLogger(__name__)


def _parse_int(v, default):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


@bp.post("")
@login_required
def create_order(user):
    """
    Builds a pending order from the items staged by the cart checkout.

    Body: { "coupon": "SAVE50"?, "shipping_address": {...}?, "razorpay_order_id": "order_..."? }
    The coupon is evaluated again here; the client-side discount is never trusted.
    """
    data = request.get_json(silent=True) or {}
    staged = (CheckoutItem.query.filter_by(user_id=user.id)
              .order_by(CheckoutItem.created_at.asc()).all())
    if not staged:
        return err("No items staged for checkout", 400)

    subtotal = round_money(sum((D(i.total_price) for i in staged), D(0)))
    if not subtotal.is_finite():
        return err("Invalid checkout totals", 400)

    coupon_code = None
    discount = D(0)
    code = (data.get("coupon") or "").strip()
    if code:
        state = evaluate_coupon(code, user.id)
        if state.status != COUPON_APPLIED:
            return err(COUPON_MESSAGES.get(state.status, "Invalid coupon code"), 400,
                       {"coupon_status": state.status})
        coupon_code = state.code
        discount = coupon_discount(state, subtotal)

    shipping = shipping_amount(subtotal, (i.quantity for i in staged))
    address = data.get("shipping_address")
    if address is not None and not isinstance(address, dict):
        return err("shipping_address must be an object", 400)

    o = Order(
        user_id=user.id,
        status="pending",
        payment_status="pending",
        razorpay_order_id=(data.get("razorpay_order_id") or None),
        subtotal=subtotal,
        discount_amount=discount,
        shipping_amount=shipping,
        total=round_money(subtotal - discount + shipping),
        coupon_code=coupon_code,
        shipping_address=address,
    )
    for i in staged:
        o.items.append(OrderItem(
            product_id=i.product_id,
            variant_id=i.variant_id,
            cart_offer_product_id=i.cart_offer_product_id,
            quantity=i.quantity,
            total_price=i.total_price,
        ))

    # staging rows stay until the payment is verified
    db.session.add(o)
    db.session.commit()
    logger.info("Order %s created for user %s (total=%s)", o.id, user.id, o.total)
    return ok("order created", o.as_api(), status=201)


@bp.get("")
@login_required
def list_orders(user):
    """
    Query params:
      - page, per_page
      - status=pending|confirmed|cancelled
      - payment_status=pending|paid|failed
    """
    q = Order.query.filter(Order.user_id == user.id)

    status = request.args.get("status")
    payment_status = request.args.get("payment_status")
    if status: q = q.filter(Order.status == status)
    if payment_status: q = q.filter(Order.payment_status == payment_status)

    page = max(_parse_int(request.args.get("page"), 1), 1)
    per = max(1, min(_parse_int(request.args.get("per_page"), 20), 100))

    paged = q.order_by(Order.created_at.desc()).paginate(page=page, per_page=per, error_out=False)
    return ok("orders", {
        "page": page,
        "per_page": per,
        "total": paged.total,
        "items": [o.as_api() for o in paged.items],
    })


@bp.get("/<order_id>")
@login_required
def get_order(user, order_id):
    oid = parse_uuid(order_id)
    o = db.session.get(Order, oid) if oid else None
    if not o or (o.user_id != user.id and user.role != "admin"):
        raise NotFoundError("order not found")
    return ok("order", o.as_api())
