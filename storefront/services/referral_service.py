# storefront/services/referral_service.py
import logging
import secrets
import string
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..model import Coupon, Order, Referral
from ..model.types import utcnow

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


def _new_code(prefix="", length=CODE_LENGTH):
    while True:
        code = prefix + "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
        if not Referral.query.filter_by(referral_code=code).first() and \
                not Coupon.query.filter_by(code=code).first():
            return code


def ensure_referral(user, referred_by_code=None) -> Referral:
    """Return the user's referral row, creating it (and the referrer link) once."""
    ref = Referral.query.filter_by(user_id=user.id).first()
    if ref:
        return ref

    referrer_id = None
    if referred_by_code:
        parent = Referral.query.filter_by(referral_code=referred_by_code.strip().upper()).first()
        if parent and parent.user_id != user.id:
            referrer_id = parent.user_id

    ref = Referral(user_id=user.id, referral_code=_new_code(), referrer_id=referrer_id)
    db.session.add(ref)
    db.session.flush()
    return ref


def referral_link(ref: Referral) -> str:
    base = current_app.config.get("SITE_URL", "").rstrip("/")
    return f"{base}/signup?ref={ref.referral_code}"


def complete_referral(user_id):
    """Reward the referrer once the referred user has a first paid order.

    Caller commits. Returns the reward coupon, or None when nothing changed.
    """
    ref = Referral.query.filter_by(user_id=user_id, status="pending").first()
    if not ref or ref.referrer_id is None:
        return None

    paid_orders = Order.query.filter_by(user_id=user_id, payment_status="paid").count()
    if paid_orders != 1:
        return None

    cfg = current_app.config
    coupon = Coupon(
        code=_new_code(prefix="REF"),
        ctype="amount",
        value=cfg.get("REFERRAL_REWARD_AMOUNT", 100),
        active=True,
        user_id=ref.referrer_id,
        expires_at=utcnow() + timedelta(days=cfg.get("REFERRAL_COUPON_TTL_DAYS", 30)),
    )
    ref.status = "completed"
    db.session.add(coupon)
    logger.info("Referral %s completed; issued %s to %s", ref.id, coupon.code, ref.referrer_id)
    return coupon


def referral_summary(user):
    ref = ensure_referral(user)
    referred = (Referral.query.filter_by(referrer_id=user.id)
                .order_by(Referral.created_at.desc()).all())
    coupons = (Coupon.query.filter_by(user_id=user.id)
               .order_by(Coupon.created_at.desc()).all())
    now = utcnow()
    available = [c for c in coupons
                 if c.active and not c.is_used and (c.expires_at is None or c.expires_at > now)]
    return {
        "referralCode": ref.referral_code,
        "referralLink": referral_link(ref),
        "stats": {
            "totalReferrals": len(referred),
            "completedReferrals": sum(1 for r in referred if r.status == "completed"),
            "totalCoupons": len(coupons),
            "availableCoupons": len(available),
        },
        "coupons": [c.as_api() for c in coupons],
        "referrals": [r.as_api() for r in referred],
    }
