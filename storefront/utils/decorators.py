# ------- storefront/utils/decorators.py -------
import uuid
from functools import wraps

from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..extensions import db
from ..model.user import User
from .api import err

def parse_uuid(value):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None

def current_user_id():
    verify_jwt_in_request()
    return parse_uuid(get_jwt_identity())

def current_user():
    uid = current_user_id()
    return db.session.get(User, uid) if uid else None

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        u = current_user()
        if not u:
            return err("Unauthorized", 401)
        return fn(u, *args, **kwargs)
    return wrapper

def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                return err("Unauthorized", 401)
            if u.role not in roles:
                return err(message or "Forbidden", 403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator
