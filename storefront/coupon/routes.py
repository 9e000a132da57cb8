# storefront/coupon/routes.py
import logging

from flask import request

from ..model import Coupon
from ..services.coupon_service import create_coupon_from_payload
from ..utils.api import ok
from ..utils.decorators import role_required
from . import bp

logger = logging.getLogger(__name__)


@bp.post("")
@role_required("admin")
def create_coupon():
    """
    Body: { "code": "SAVE50", "type": "amount" | "percent", "value": 50,
            "active": true, "expires_at": "2026-12-31T23:59:59Z" }
    """
    c = create_coupon_from_payload(request.get_json(silent=True) or {})
    logger.info("Coupon %s created (%s %s)", c.code, c.ctype, c.value)
    return ok("Coupon created", c.as_api(), status=201)


@bp.get("")
@role_required("admin")
def list_coupons():
    q = Coupon.query
    active = request.args.get("active")
    if active is not None:
        q = q.filter(Coupon.active == (active.lower() == "true"))

    items = q.order_by(Coupon.id.desc()).all()
    logger.debug("list_coupons count=%d", len(items))
    return ok("ok", [c.as_api() for c in items])
