# storefront/users/routes.py
import logging

from flask import request

from ..extensions import db
from ..model import Variant, WishlistItem
from ..services.referral_service import referral_summary
from ..services.wishlist_state import WishlistEntry, WishlistState, add_entry, remove_entry
from ..utils.api import ok, err
from ..utils.decorators import login_required, parse_uuid
from . import bp

logger = logging.getLogger(__name__)


def _entry(row: WishlistItem) -> WishlistEntry:
    return WishlistEntry(row.product_id, row.variant_id, row.created_at, row)

def _load_wishlist(user_id) -> WishlistState:
    rows = WishlistItem.query.filter_by(user_id=user_id).all()
    return WishlistState.of(_entry(r) for r in rows)

def _wishlist_payload(state: WishlistState):
    return {"items": [e.payload.as_api() for e in state.entries], "count": state.count}


# ---- wishlist --------------------------------------------------------------

@bp.get("/wishlist")
@login_required
def get_wishlist(user):
    return ok("wishlist", _wishlist_payload(_load_wishlist(user.id)))


@bp.post("/wishlist")
@login_required
def add_to_wishlist(user):
    """Body: { "userId": uuid, "productId": uuid, "variantId": uuid }"""
    data = request.get_json(silent=True) or {}
    if str(parse_uuid(data.get("userId"))) != str(user.id):
        return err("Forbidden", 403)

    product_id = parse_uuid(data.get("productId"))
    variant_id = parse_uuid(data.get("variantId"))
    if not product_id or not variant_id:
        return err("productId and variantId are required", 400)

    variant = db.session.get(Variant, variant_id)
    if not variant or variant.product_id != product_id:
        return err("product variant not found", 404)

    def insert():
        row = WishlistItem(user_id=user.id, product_id=product_id, variant_id=variant_id)
        db.session.add(row)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return _entry(row)

    change = add_entry(_load_wishlist(user.id), product_id, variant_id, insert)
    if not change.ok:
        return err("Failed to add item to wishlist", 500)
    return ok("Added to wishlist", {"item": change.entry.payload.as_api()}, status=201)


@bp.delete("/wishlist")
@login_required
def remove_from_wishlist(user):
    """Query: ?productId=<uuid>&variantId=<uuid>"""
    product_id = parse_uuid(request.args.get("productId"))
    variant_id = parse_uuid(request.args.get("variantId"))
    if not product_id or not variant_id:
        return err("productId and variantId are required", 400)

    state = _load_wishlist(user.id)
    if not state.contains(product_id, variant_id):
        return err("item not in wishlist", 404)

    def delete(entry):
        db.session.delete(entry.payload)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    change = remove_entry(state, product_id, variant_id, delete)
    if not change.ok:
        # state already holds the restored entry
        return err("Failed to remove item from wishlist", 500, _wishlist_payload(change.state))
    return ok("Removed from wishlist", _wishlist_payload(change.state))


# ---- referrals -------------------------------------------------------------

@bp.get("/referrals")
@login_required
def referrals(user):
    summary = referral_summary(user)
    # ensure_referral may have created the row on first visit
    db.session.commit()
    return ok("referrals", summary)
