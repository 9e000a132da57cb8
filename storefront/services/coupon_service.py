# storefront/services/coupon_service.py
from datetime import datetime, timezone

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..model import Coupon
from ..model.types import utcnow
from ..utils.money import D
from .cart_state import CouponState
from .pricing import COUPON_APPLIED, COUPON_TYPES

COUPON_MESSAGES = {
    "applied": "Coupon applied",
    "invalid": "Invalid coupon code",
    "invalid_amount": "Coupon has an invalid discount value",
    "expired": "Coupon has expired",
    "used": "Coupon has already been used",
}

def _parse_iso8601(s):
    if not s: return None
    s = s.strip()
    if s.endswith("Z"): s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt

def find_coupon(code):
    code = (code or "").strip()
    if not code:
        return None
    return Coupon.query.filter(func.lower(Coupon.code) == code.lower()).first()

def coupon_status(c, user_id, now=None) -> str:
    now = now or utcnow()
    if not c or not c.active:
        return "invalid"
    if c.user_id is not None and str(c.user_id) != str(user_id):
        return "invalid"
    if c.value is None or not D(c.value).is_finite() or D(c.value) <= 0:
        return "invalid_amount"
    if c.expires_at and now > c.expires_at:
        return "expired"
    if c.is_used:
        return "used"
    return COUPON_APPLIED

def evaluate_coupon(code, user_id, now=None) -> CouponState:
    c = find_coupon(code)
    status = coupon_status(c, user_id, now)
    if c is None:
        return CouponState(code=(code or "").strip(), status=status)
    return CouponState(
        code=c.code,
        ctype=c.ctype,
        value=D(c.value) if c.value is not None else None,
        status=status,
    )

def mark_coupon_used(code, user_id):
    c = find_coupon(code)
    if c is None or c.is_used:
        return False
    # only owned coupons are single-use
    if c.user_id is None or str(c.user_id) != str(user_id):
        return False
    c.is_used = True
    c.used_at = utcnow()
    return True

def create_coupon_from_payload(data: dict) -> Coupon:
    code = (data.get("code") or "").strip()
    ctype = (data.get("type") or data.get("ctype") or "amount").lower().strip()
    value = D(data.get("value"))
    if not value.is_finite():
        raise ValidationError("value must be numeric")

    if not code:
        raise ValidationError("code is required")
    if ctype not in COUPON_TYPES:
        raise ValidationError("type must be 'amount' or 'percent'")
    if value <= 0:
        raise ValidationError("value must be > 0")
    if ctype == "percent" and value > 100:
        raise ValidationError("percent coupon must be <= 100")

    if find_coupon(code):
        raise ValidationError("Coupon code already exists")

    expires_at = _parse_iso8601(data.get("expires_at"))
    if data.get("expires_at") and not expires_at:
        raise ValidationError("Invalid datetime format for expires_at")

    c = Coupon(
        code=code, ctype=ctype, value=value,
        active=bool(data.get("active", True)),
        expires_at=expires_at,
    )
    db.session.add(c)
    db.session.commit()
    return c
