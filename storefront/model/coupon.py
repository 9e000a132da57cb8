# --- storefront/model/coupon.py ---

from ..extensions import db
from ..utils.money import to_float
from .types import GUID, utcnow, iso

class Coupon(db.Model):
    __tablename__ = "coupons"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)

    # "amount" or "percent"
    ctype = db.Column(db.String(16), nullable=False, default="amount")
    value = db.Column(db.Numeric(10, 2), nullable=True)

    active = db.Column(db.Boolean, default=True, index=True)
    expires_at = db.Column(db.DateTime, nullable=True)

    # referral rewards belong to one user; None means anyone can redeem
    user_id = db.Column(GUID(), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    is_used = db.Column(db.Boolean, default=False, nullable=False)
    used_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "type": self.ctype,
            "value": to_float(self.value) if self.value is not None else None,
            "active": self.active,
            "isUsed": self.is_used,
            "expiryDate": iso(self.expires_at),
            "createdAt": iso(self.created_at),
        }
