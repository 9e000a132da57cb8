import uuid
from datetime import timedelta

from flask import request
from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token, jwt_required

from . import bp
from ..model import User, RefreshToken
from ..model.types import utcnow
from ..extensions import db
from ..services.referral_service import ensure_referral
from ..utils.api import ok, err
from ..utils.decorators import current_user


# --- helper: create & persist a token pair ---
def _issue_tokens(user_id, refresh_ttl_days: int = 7):
    access_token = create_access_token(identity=str(user_id))
    refresh_token_str = uuid.uuid4().hex
    db.session.add(RefreshToken(
        user_id=user_id,
        token=refresh_token_str,
        expires_at=utcnow() + timedelta(days=refresh_ttl_days),
    ))
    return access_token, refresh_token_str


@bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email:
        return err("Email required", 400)
    if not password or len(password) < 6:
        return err("Password required, min 6 chars", 400)
    if User.query.filter_by(email=email).first():
        return err("Email already registered", 409)

    # Bootstrap: very first account becomes admin
    is_first_user = db.session.query(User.id).count() == 0

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        first_name=(data.get("first_name") or "").strip() or None,
        last_name=(data.get("last_name") or "").strip() or None,
        phone_number=(data.get("phone_number") or "").strip() or None,
        role="admin" if is_first_user else "user",
    )
    db.session.add(user)
    db.session.flush()
    ref = ensure_referral(user, referred_by_code=data.get("referral_code"))
    access_token, refresh_token = _issue_tokens(user.id)
    db.session.commit()

    return ok("Account created successfully", {
        "user": user.as_dict(),
        "referral_code": ref.referral_code,
        "referred": ref.referrer_id is not None,
        "token": access_token,
        "refresh_token": refresh_token,
    }, status=201)

@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return err("Email and password are required", 400)
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        return err("Invalid email or password", 401)

    access_token, refresh_token = _issue_tokens(user.id)
    db.session.commit()

    return ok("You've logged in successfully", {
        "user": user.as_dict(),
        "user_logged_in": True,
        "token": access_token,
        "refresh_token": refresh_token,
    })

@bp.get("/me")
@jwt_required()
def me():
    user = current_user()
    if not user:
        return err("user not found", 404)
    return ok("user", {"user": user.as_dict()})

@bp.post("/refresh")
def refresh():
    data = request.get_json(silent=True) or {}
    token_str = data.get("refresh_token")
    if not token_str:
        return err("refresh_token is required", 400)

    refresh_row = RefreshToken.query.filter_by(token=token_str).first()
    if not refresh_row or refresh_row.expires_at < utcnow():
        return err("Invalid or expired refresh token", 401)

    user_id = refresh_row.user_id

    # ROTATE: the presented refresh token is single-use
    db.session.delete(refresh_row)
    db.session.flush()

    new_access, new_refresh = _issue_tokens(user_id)
    db.session.commit()

    return ok("Token refreshed", {"token": new_access, "refresh_token": new_refresh})
