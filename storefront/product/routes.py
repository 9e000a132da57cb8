import re

from flask import request
from sqlalchemy import or_, desc, asc
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..model import Brand, Category, Product, Variant
from ..utils.api import ok, err
from ..utils.decorators import parse_uuid, role_required
from ..utils.money import D
from . import bp

# ---------- helpers ----------
def slugify(text):
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")

def _parse_int(v, default=0):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default

def _parse_opt_float(v):
    if v is None: return None
    if isinstance(v, str) and v.strip() == "": return None
    try: return float(v)
    except (TypeError, ValueError): return None

def _sort_products(query, sort):
    sort = (sort or "").strip()
    mapping = {
        "name": asc(Product.name), "-name": desc(Product.name),
        "price": asc(Product.our_price), "-price": desc(Product.our_price),
        "newest": desc(Product.created_at), "oldest": asc(Product.created_at),
    }
    col = mapping.get(sort, desc(Product.created_at))  # default newest first
    return query.order_by(col)

def _get_product(key):
    pid = parse_uuid(key)
    if pid:
        return db.session.get(Product, pid)
    return Product.query.filter_by(slug=key).first()

# ---------- routes ----------
# GET /api/products
@bp.get("")
def list_products():
    """
    Query params:
      q            -> substring match on name/sku/description
      category     -> category slug
      brand        -> brand slug
      min_price    -> float (our_price)
      max_price    -> float (our_price)
      sort         -> name, -name, price, -price, newest, oldest
      page         -> int, default 1
      per_page     -> int, default 15 (cap 100)
    """
    q = (request.args.get("q") or "").strip()
    category = (request.args.get("category") or "").strip()
    brand = (request.args.get("brand") or "").strip()
    min_price = _parse_opt_float(request.args.get("min_price"))
    max_price = _parse_opt_float(request.args.get("max_price"))
    page = max(_parse_int(request.args.get("page"), 1), 1)
    per_page = max(1, min(_parse_int(request.args.get("per_page"), 15), 100))

    query = Product.query.filter(Product.status == "active")

    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Product.name.ilike(like),
            Product.sku.ilike(like),
            Product.description.ilike(like),
        ))
    if category:
        query = query.join(Category, Product.category_id == Category.id).filter(Category.slug == category)
    if brand:
        query = query.join(Brand, Product.brand_id == Brand.id).filter(Brand.slug == brand, Brand.is_active.is_(True))
    if min_price is not None:
        query = query.filter(Product.our_price >= min_price)
    if max_price is not None:
        query = query.filter(Product.our_price <= max_price)

    query = _sort_products(query, request.args.get("sort"))
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)

    return ok("Products fetched", {
        "items": [p.as_api() for p in pagination.items],
        "meta": {
            "page": pagination.page,
            "pages": pagination.pages or 1,
            "per_page": per_page,
            "total": pagination.total,
        },
    })

# GET /api/products/<id or slug>
@bp.get("/<key>")
def get_product(key):
    product = _get_product(key)
    if not product:
        return err("Product not found", 404)
    return ok("Product fetched", product.as_api())

# POST /api/products
@bp.post("")
@role_required("admin")
def create_product():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    sku = (data.get("sku") or "").strip()
    if not name:
        return err("name is required")
    if not sku:
        return err("sku is required")
    mrp = D(data.get("mrp"))
    if not mrp.is_finite() or mrp <= 0:
        return err("mrp must be > 0")
    our_price = D(data.get("our_price")) if data.get("our_price") is not None else None
    if our_price is not None and (not our_price.is_finite() or our_price < 0):
        return err("our_price must be >= 0")

    product = Product(
        name=name,
        slug=data.get("slug") or slugify(name),
        sku=sku,
        description=data.get("description"),
        mrp=mrp,
        our_price=our_price,
        status=data.get("status", "active"),
        total_stocks=_parse_int(data.get("total_stocks")),
        product_images=data.get("product_images") or [],
        category_id=parse_uuid(data.get("category_id")),
        brand_id=parse_uuid(data.get("brand_id")),
    )

    for v in data.get("variants") or []:
        v_name = (v.get("name") or "").strip()
        v_sku = (v.get("sku") or "").strip()
        if not v_name or not v_sku:
            return err("variant name and sku are required")
        v_mrp = D(v.get("mrp", mrp))
        v_price = D(v.get("our_price", our_price if our_price is not None else mrp))
        if not v_mrp.is_finite() or not v_price.is_finite():
            return err("variant prices must be numeric")
        product.variants.append(Variant(
            name=v_name,
            sku=v_sku,
            slug=v.get("slug") or slugify(f"{name}-{v_name}"),
            mrp=v_mrp,
            our_price=v_price,
            stock=_parse_int(v.get("stock")),
            product_images=v.get("product_images") or [],
        ))

    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return err("sku already exists", 409)
    return ok("Product created", product.as_api(), status=201)
