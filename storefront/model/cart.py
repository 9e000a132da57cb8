# storefront/model/cart.py
from __future__ import annotations

from ..extensions import db
from ..utils.money import D, to_float
from .types import GUID, guid_column, utcnow, iso


class CartItem(db.Model):
    __tablename__ = "cart"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", "variant_id", name="unique_user_product_variant"),
    )

    id = guid_column(db)
    user_id = db.Column(GUID(), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(GUID(), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = db.Column(GUID(), db.ForeignKey("variants.id", ondelete="CASCADE"), nullable=False, index=True)
    cart_offer_product_id = db.Column(GUID(), db.ForeignKey("cart_offer_products.id"), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    product = db.relationship("Product", lazy="joined")
    variant = db.relationship("Variant", lazy="joined")
    offer_product = db.relationship("CartOfferProduct", lazy="joined")


class CartOfferProduct(db.Model):
    """Promotional add-on unlocked by the cart subtotal tier (``range``)."""
    __tablename__ = "cart_offer_products"

    id = guid_column(db)
    product_name = db.Column(db.String(255), nullable=False)
    product_image = db.Column(db.String(1024), nullable=False, default="")
    range = db.Column(db.String(16), nullable=False, index=True)  # "1000" | "5000" | "10000" | "25000"
    our_price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def price_dec(self):
        return D(self.our_price)

    def as_api(self):
        return {
            "id": str(self.id),
            "productName": self.product_name,
            "productImage": self.product_image,
            "range": self.range,
            "ourPrice": to_float(self.our_price),
            "quantity": self.quantity,
            "createdAt": iso(self.created_at),
        }


class CartCoupon(db.Model):
    """The single coupon applied to a user's cart."""
    __tablename__ = "cart_coupon"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(GUID(), db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupons.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    coupon = db.relationship("Coupon", lazy="joined")
