# --- category/routes.py ---
from flask import request
from sqlalchemy import asc, desc

from ..model import Category
from ..extensions import db
from ..product.routes import slugify
from ..utils.api import ok, err
from ..utils.decorators import role_required
from . import bp

# ------------------------ CATEGORY ROUTES ------------------------

@bp.get("")
def list_categories():
    """
    q     -> substring match on name
    sort  -> name, -name, order (display_order), -order
    """
    q = (request.args.get("q") or "").strip()
    sort = (request.args.get("sort") or "order").strip()

    query = Category.query.filter(Category.is_active.is_(True))
    if q:
        query = query.filter(Category.name.ilike(f"%{q}%"))

    mapping = {
        "name": asc(Category.name), "-name": desc(Category.name),
        "order": asc(Category.display_order), "-order": desc(Category.display_order),
    }
    query = query.order_by(mapping.get(sort, asc(Category.display_order)), asc(Category.name))
    return ok("categories", [c.as_dict() for c in query.all()])


@bp.post("")
@role_required("admin")
def create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return err("name required", 400)
    slug = (data.get("slug") or "").strip() or slugify(name)
    if Category.query.filter_by(slug=slug).first():
        return err("Category slug already exists", 400)

    try:
        display_order = int(data.get("display_order") or 0)
    except (TypeError, ValueError):
        return err("display_order must be an integer", 400)

    c = Category(
        name=name,
        slug=slug,
        description=data.get("description"),
        image_url=data.get("image_url"),
        is_active=bool(data.get("is_active", True)),
        display_order=display_order,
    )
    db.session.add(c)
    db.session.commit()
    return ok("Category created", {"category": c.as_dict()}, status=201)
