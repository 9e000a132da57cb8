# ------ storefront/model/__init__.py ------

from .user import User, RefreshToken
from .product import Category, Brand, Product, Variant
from .cart import CartItem, CartOfferProduct, CartCoupon
from .coupon import Coupon
from .order import Order, OrderItem, CheckoutItem
from .referral import Referral
from .wishlist import WishlistItem
from .types import GUID

__all__ = [
    "User",
    "RefreshToken",
    "Category",
    "Brand",
    "Product",
    "Variant",
    "CartItem",
    "CartOfferProduct",
    "CartCoupon",
    "Coupon",
    "Order",
    "OrderItem",
    "CheckoutItem",
    "Referral",
    "WishlistItem",
    "GUID",
]
