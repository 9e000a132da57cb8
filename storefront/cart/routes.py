# storefront/cart/routes.py
from __future__ import annotations

import logging

from flask import request, jsonify

from ..extensions import db
from ..model import CartCoupon, CartItem, CartOfferProduct, CheckoutItem, Variant
from ..services.cart_state import CartLine, CartSession, CartSnapshot
from ..services.checkout import CheckoutHandoffError, CheckoutValidationError, hand_off
from ..services.coupon_service import COUPON_MESSAGES, evaluate_coupon, find_coupon
from ..services.offers import OFFER_TIERS, OfferResolver, eligible_range
from ..utils.api import ok, err
from ..utils.decorators import login_required, parse_uuid
from ..utils.money import D
from . import bp

logger = logging.getLogger(__name__)

# ---- helpers ---------------------------------------------------------------

def _parse_quantity(v):
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    return None

def _line_from_row(row: CartItem) -> CartLine:
    offer = row.offer_product
    return CartLine(
        id=row.id,
        product_id=row.product_id,
        variant_id=row.variant_id,
        quantity=int(row.quantity),
        unit_price=D(row.variant.our_price),
        mrp=D(row.variant.mrp),
        offer_product_id=row.cart_offer_product_id,
        offer_price=offer.price_dec() if offer else None,
        name=f"{row.product.name} - {row.variant.name}" if row.product else None,
    )

def _cart_rows(user_id):
    return (CartItem.query.filter_by(user_id=user_id)
            .order_by(CartItem.created_at.asc())
            .all())

def _find_row(user_id, item_id):
    iid = parse_uuid(item_id)
    if not iid:
        return None
    return CartItem.query.filter_by(user_id=user_id, id=iid).first()

def load_session(user_id) -> CartSession:
    items = tuple(_line_from_row(r) for r in _cart_rows(user_id))
    coupon = None
    link = CartCoupon.query.filter_by(user_id=user_id).first()
    if link and link.coupon:
        # re-evaluated on every load: an expired or used coupon stops discounting
        coupon = evaluate_coupon(link.coupon.code, user_id)
    return CartSession(CartSnapshot(items=items, coupon=coupon))

def _cart_response(msg, snapshot: CartSnapshot, status=200, extra=None):
    return ok(msg, {**snapshot.as_api(), **(extra or {})}, status=status)

def _clear_cart(user_id):
    CartItem.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    CartCoupon.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    db.session.commit()

def _offers_for_range(tier):
    rows = (CartOfferProduct.query.filter_by(range=tier)
            .order_by(CartOfferProduct.created_at.asc()).all())
    return [o.as_api() for o in rows]

# ---- endpoints -------------------------------------------------------------

@bp.get("")
@login_required
def get_cart(user):
    return _cart_response("cart", load_session(user.id).snapshot)


@bp.post("/items")
@login_required
def add_item(user):
    """
    Body: { "product_id": uuid, "variant_id": uuid, "quantity": int }
    Adds to the existing quantity when the variant is already in the cart.
    """
    data = request.get_json(silent=True) or {}
    variant_id = parse_uuid(data.get("variant_id"))
    qty = _parse_quantity(data.get("quantity", 1))

    if not variant_id:
        return err("variant_id is required", 400)
    if qty is None or qty < 1:
        return err("quantity must be an integer >= 1", 400)

    variant = db.session.get(Variant, variant_id)
    if not variant or (data.get("product_id") and str(variant.product_id) != str(data.get("product_id"))):
        return err("product variant not found", 404)
    if variant.product.status != "active":
        return err("product is inactive", 404)

    session = load_session(user.id)
    result = session.add_item(CartLine(
        id=None,
        product_id=variant.product_id,
        variant_id=variant.id,
        quantity=qty,
        unit_price=D(variant.our_price),
        mrp=D(variant.mrp),
    ))
    if not result.ok:
        return err(result.error, 400)

    row = CartItem.query.filter_by(user_id=user.id, product_id=variant.product_id, variant_id=variant.id).first()
    if row:
        row.quantity = row.quantity + qty
    else:
        db.session.add(CartItem(user_id=user.id, product_id=variant.product_id, variant_id=variant.id, quantity=qty))
    db.session.commit()

    return _cart_response("item added", load_session(user.id).snapshot, status=201)


@bp.patch("/items/<item_id>")
@login_required
def update_item(user, item_id):
    """Body: { "quantity": int }  (quantity must be >= 1)"""
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        return err("quantity is required", 400)
    qty = _parse_quantity(data.get("quantity"))

    row = _find_row(user.id, item_id)
    if not row:
        return err("item not found in this cart", 404)

    session = load_session(user.id)
    result = session.update_quantity(row.id, qty)
    if not result.ok:
        return err(result.error, 400)

    row.quantity = qty
    db.session.commit()
    return _cart_response("item updated", result.snapshot)


@bp.delete("/items/<item_id>")
@login_required
def remove_item(user, item_id):
    row = _find_row(user.id, item_id)
    if not row:
        return err("item not found in this cart", 404)

    result = load_session(user.id).remove_item(row.id)
    db.session.delete(row)
    db.session.commit()
    return _cart_response("item removed", result.snapshot)


# ---- clear all items (and the applied coupon) ------------------------------
@bp.delete("/items")
@login_required
def clear_cart_items(user):
    result = load_session(user.id).clear()
    _clear_cart(user.id)
    return _cart_response("all items removed", result.snapshot)


@bp.post("/items/<item_id>/offer")
@login_required
def attach_offer(user, item_id):
    """Body: { "offer_product_id": uuid }"""
    data = request.get_json(silent=True) or {}
    offer_id = parse_uuid(data.get("offer_product_id"))
    if not offer_id:
        return err("offer_product_id is required", 400)

    row = _find_row(user.id, item_id)
    if not row:
        return err("item not found in this cart", 404)
    offer = db.session.get(CartOfferProduct, offer_id)
    if not offer:
        return err("offer product not found", 404)

    session = load_session(user.id)
    snap = session.snapshot
    line = snap.find(row.id)
    if line.is_offer_line or snap.has_offer_item:
        return err("cart already contains an offer product", 409)

    eligible = eligible_range(snap.totals.subtotal, snap.has_regular_item)
    if eligible is None:
        return err("Add more items to unlock offer products", 400)
    if offer.range not in OFFER_TIERS or OFFER_TIERS.index(offer.range) < OFFER_TIERS.index(eligible):
        return err("cart value is too low for this offer product", 400)

    result = session.attach_offer(row.id, offer.id, offer.price_dec())
    if not result.ok:
        return err(result.error, 409)

    row.cart_offer_product_id = offer.id
    db.session.commit()
    logger.info("User %s attached offer %s to cart item %s", user.id, offer.id, row.id)
    return _cart_response(f"{offer.product_name} added to cart!", result.snapshot)


@bp.delete("/items/<item_id>/offer")
@login_required
def detach_offer(user, item_id):
    row = _find_row(user.id, item_id)
    if not row:
        return err("item not found in this cart", 404)

    result = load_session(user.id).detach_offer(row.id)
    if not result.ok:
        return err(result.error, 404)

    row.cart_offer_product_id = None
    db.session.commit()
    return _cart_response("offer product removed", result.snapshot)


@bp.post("/coupon")
@login_required
def apply_coupon(user):
    """
    Body: { "code": "SUMMER10" }
    The coupon status is one of applied | invalid | invalid_amount | expired | used.
    """
    data = request.get_json(silent=True) or {}
    code = (data.get("code") or "").strip()
    if not code:
        return err("Please enter a coupon code", 400)

    session = load_session(user.id)
    state = evaluate_coupon(code, user.id)
    result = session.apply_coupon(state)
    if not result.ok:
        return err(COUPON_MESSAGES.get(state.status, "Invalid coupon code"), 400, {
            **result.snapshot.as_api(),
            "coupon_status": state.status,
        })

    coupon = find_coupon(state.code)
    link = CartCoupon.query.filter_by(user_id=user.id).first()
    if link:
        link.coupon_id = coupon.id
    else:
        db.session.add(CartCoupon(user_id=user.id, coupon_id=coupon.id))
    db.session.commit()

    return _cart_response(f"Coupon {state.code} applied", result.snapshot, extra={"coupon_status": state.status})


@bp.delete("/coupon")
@login_required
def remove_coupon(user):
    result = load_session(user.id).remove_coupon()
    if not result.ok:
        return err(result.error, 404)
    CartCoupon.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.commit()
    return _cart_response("coupon removed", result.snapshot)


# ---- offer products --------------------------------------------------------

@bp.get("/range-offers")
def range_offers():
    """Offer products for one tier; an empty list means no offers."""
    tier = (request.args.get("range") or "").strip()
    if tier not in OFFER_TIERS:
        return err(f"range must be one of {', '.join(OFFER_TIERS)}", 400)
    return jsonify(_offers_for_range(tier))


@bp.get("/offers")
@login_required
def cart_offers(user):
    """Offer tier for the current cart.

    The resolver lives for one request, so a newer request never waits on
    or reads an older one; supersession between interleaved resolves is
    handled inside ``OfferResolver``.
    """
    snap = load_session(user.id).snapshot
    resolution = OfferResolver(_offers_for_range).resolve(snap.totals.subtotal, snap.has_regular_item)
    return ok("offers", {
        **resolution.as_api(),
        "subtotal": snap.totals.as_api()["subtotal"],
        "hasOfferProductInCart": snap.has_offer_item,
    })


# ---- checkout handoff ------------------------------------------------------

def _stage_checkout_item(item):
    db.session.add(CheckoutItem(
        user_id=item.user_id,
        product_id=item.product_id,
        variant_id=item.variant_id,
        cart_offer_product_id=item.cart_offer_product_id,
        total_price=item.total_price,
        quantity=item.quantity,
    ))
    db.session.commit()


@bp.post("/checkout")
@login_required
def checkout(user):
    snap = load_session(user.id).snapshot
    try:
        result = hand_off(
            snap,
            user.id,
            submit=_stage_checkout_item,
            clear_cart=lambda: _clear_cart(user.id),
        )
    except CheckoutValidationError as e:
        db.session.rollback()
        return err(e.message, 400, {"submitted": len(e.completed)})
    except CheckoutHandoffError as e:
        db.session.rollback()
        return err(e.message, 500, {"submitted": len(e.completed)})

    return ok("Items added to checkout", result.as_api())
