from flask import jsonify, request
from flask_login import login_required

from app.extensions import db, limiter
from app.services.identity import get_identity
from app.utils.helpers import json_body, ok
from . import bp


def _login_email_scope():
    data_json = request.get_json(silent=True) or {}
    email = (request.form.get("email") or data_json.get("email") or "").strip().lower()
    # Keep a stable scope even if email is blank
    return f"login-email:{email or 'missing'}"


@bp.post("/login")
@limiter.limit("10 per minute; 100 per hour")              # per-IP (anon -> IP via _rate_limit_key)
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)  # per-account
def login_post():
    data = json_body()
    user = get_identity().sign_in(db.session, data.get("email"), data.get("password") or "")
    return ok(user=user.to_dict())


@bp.post("/logout")
def logout_post():
    get_identity().sign_out()
    return ok()


@bp.get("/me")
@login_required
def me():
    user = get_identity().current_user()
    return jsonify({"ok": True, "user": user.to_dict() if user else None}), 200
