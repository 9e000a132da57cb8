from ..extensions import db
from .types import GUID, guid_column, utcnow, iso

class WishlistItem(db.Model):
    __tablename__ = "wishlists"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", "variant_id", name="unique_wishlist_entry"),
    )

    id = guid_column(db)
    user_id = db.Column(GUID(), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(GUID(), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = db.Column(GUID(), db.ForeignKey("variants.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    product = db.relationship("Product", lazy="joined")
    variant = db.relationship("Variant", lazy="joined")

    def as_api(self):
        return {
            "productId": str(self.product_id),
            "variantId": str(self.variant_id),
            "createdAt": iso(self.created_at),
            "product": self.product.as_api(with_variants=False) if self.product else None,
            "variant": self.variant.as_api() if self.variant else None,
        }
