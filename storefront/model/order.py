# storefront/model/order.py
from ..extensions import db
from ..utils.money import to_float
from .types import GUID, guid_column, utcnow, iso

class Order(db.Model):
    __tablename__ = "orders"

    id = guid_column(db)
    user_id = db.Column(GUID(), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = db.Column(db.String(20), default="pending", nullable=False, index=True)  # pending | confirmed | cancelled
    payment_status = db.Column(db.String(20), default="pending", nullable=False, index=True)  # pending | paid | failed

    razorpay_order_id = db.Column(db.String(64), index=True)
    razorpay_payment_id = db.Column(db.String(64))

    # Money snapshot
    subtotal = db.Column(db.Numeric(12, 2))
    discount_amount = db.Column(db.Numeric(12, 2))
    shipping_amount = db.Column(db.Numeric(12, 2))
    total = db.Column(db.Numeric(12, 2))
    coupon_code = db.Column(db.String(64))

    shipping_address = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def as_api(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "status": self.status,
            "payment_status": self.payment_status,
            "razorpay_order_id": self.razorpay_order_id,
            "razorpay_payment_id": self.razorpay_payment_id,
            "money": {
                "subtotal": to_float(self.subtotal or 0),
                "discount_amount": to_float(self.discount_amount or 0),
                "shipping_amount": to_float(self.shipping_amount or 0),
                "total": to_float(self.total or 0),
            },
            "coupon_code": self.coupon_code,
            "shipping_address": self.shipping_address,
            "items": [i.as_api() for i in self.items],
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(GUID(), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = db.Column(GUID(), index=True)
    variant_id = db.Column(GUID())
    cart_offer_product_id = db.Column(GUID())
    quantity = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Numeric(12, 2))

    def as_api(self):
        return {
            "product_id": str(self.product_id),
            "variant_id": str(self.variant_id),
            "cart_offer_product_id": str(self.cart_offer_product_id) if self.cart_offer_product_id else None,
            "quantity": self.quantity,
            "total_price": to_float(self.total_price or 0),
        }

class CheckoutItem(db.Model):
    """Staging row between "proceed to checkout" and payment confirmation."""
    __tablename__ = "checkout"

    id = guid_column(db)
    user_id = db.Column(GUID(), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(GUID(), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = db.Column(GUID(), db.ForeignKey("variants.id", ondelete="CASCADE"), nullable=False)
    cart_offer_product_id = db.Column(GUID(), db.ForeignKey("cart_offer_products.id"), nullable=True)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow)

    def as_api(self):
        return {
            "id": str(self.id),
            "userId": str(self.user_id),
            "productId": str(self.product_id),
            "variantId": str(self.variant_id),
            "cartOfferProductId": str(self.cart_offer_product_id) if self.cart_offer_product_id else None,
            "totalPrice": to_float(self.total_price),
            "quantity": self.quantity,
        }
