#  --- storefront/model/referral.py ---
from ..extensions import db
from .types import GUID, guid_column, utcnow, iso

class Referral(db.Model):
    __tablename__ = "referrals"

    id = guid_column(db)
    user_id = db.Column(GUID(), db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    referral_code = db.Column(db.String(10), unique=True, nullable=False, index=True)
    referrer_id = db.Column(GUID(), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    status = db.Column(db.String(16), default="pending", nullable=False)  # pending | completed
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def as_api(self):
        return {
            "id": str(self.id),
            "referredUserId": str(self.user_id),
            "status": self.status,
            "createdAt": iso(self.created_at),
        }
