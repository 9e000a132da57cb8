from flask import Blueprint

bp = Blueprint("brand", __name__, url_prefix="/api/brands")

from . import routes  # noqa: E402,F401
