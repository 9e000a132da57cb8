import logging

from flask import request

from ..extensions import db
from ..model import Brand
from ..utils.api import ok, err
from ..utils.decorators import parse_uuid, role_required
from . import bp

logger = logging.getLogger(__name__)


def _get_brand(brand_id):
    bid = parse_uuid(brand_id)
    return db.session.get(Brand, bid) if bid else None


@bp.get("")
def list_brands():
    items = Brand.query.filter(Brand.is_active.is_(True)).order_by(Brand.name.asc()).all()
    return ok("brands", [b.as_dict() for b in items])


@bp.patch("/<brand_id>")
@role_required("admin")
def update_brand(brand_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("isActive"), bool):
        return err("isActive must be a boolean", 400)

    brand = _get_brand(brand_id)
    if not brand:
        return err("Brand not found", 404)

    brand.is_active = data["isActive"]
    db.session.commit()
    logger.info("Brand %s is_active=%s", brand.id, brand.is_active)
    return ok("Brand updated", brand.as_dict())


@bp.delete("/<brand_id>")
@role_required("admin")
def delete_brand(brand_id):
    brand = _get_brand(brand_id)
    if not brand:
        return err("Brand not found", 404)
    db.session.delete(brand)
    db.session.commit()
    return ok("Brand deleted")
