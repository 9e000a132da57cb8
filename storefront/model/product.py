# storefront/model/product.py
from ..extensions import db
from ..utils.money import to_float
from .types import GUID, guid_column, utcnow, iso

class Category(db.Model):
    __tablename__ = "categories"
    id = guid_column(db)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, default=True)
    display_order = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def as_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "display_order": self.display_order,
            }


class Brand(db.Model):
    __tablename__ = "brands"
    id = guid_column(db)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def as_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            "updated_at": iso(self.updated_at),
        }


class Product(db.Model):
    __tablename__ = "products"
    id = guid_column(db)
    name = db.Column(db.String(255), nullable=False, index=True)
    slug = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text)
    sku = db.Column(db.String(100), nullable=False, unique=True)

    mrp = db.Column(db.Numeric(10, 2), nullable=False)
    our_price = db.Column(db.Numeric(10, 2))
    status = db.Column(db.String(16), nullable=False, default="active")  # active | inactive
    total_stocks = db.Column(db.Integer, nullable=False, default=0)
    product_images = db.Column(db.JSON, nullable=False, default=list)

    category_id = db.Column(GUID(), db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    brand_id = db.Column(GUID(), db.ForeignKey("brands.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    category = db.relationship("Category", lazy="joined")
    brand = db.relationship("Brand", lazy="joined")
    variants = db.relationship(
        "Variant",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Variant.created_at.asc()",
    )

    def as_api(self, with_variants=True):
        data = {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "sku": self.sku,
            "mrp": to_float(self.mrp),
            "our_price": to_float(self.our_price) if self.our_price is not None else None,
            "status": self.status,
            "total_stocks": self.total_stocks,
            "product_images": self.product_images or [],
            "category": self.category.as_dict() if self.category else None,
            "brand": self.brand.as_dict() if self.brand else None,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if with_variants:
            data["variants"] = [v.as_api() for v in self.variants]
        return data


class Variant(db.Model):
    __tablename__ = "variants"
    id = guid_column(db)
    product_id = db.Column(GUID(), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(100), nullable=False, unique=True)
    slug = db.Column(db.String(255), nullable=False)
    mrp = db.Column(db.Numeric(10, 2), nullable=False)
    our_price = db.Column(db.Numeric(10, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    product_images = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=utcnow)

    def as_api(self):
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "name": self.name,
            "sku": self.sku,
            "slug": self.slug,
            "mrp": to_float(self.mrp),
            "our_price": to_float(self.our_price),
            "stock": self.stock,
            "product_images": self.product_images or [],
        }
