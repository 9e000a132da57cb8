from flask import Blueprint

bp = Blueprint("razorpay", __name__, url_prefix="/api/razorpay")

from . import routes  # noqa: E402,F401
