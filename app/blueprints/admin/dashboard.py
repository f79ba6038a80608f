# app/blueprints/admin/dashboard.py
from flask import jsonify

from . import bp

from app.extensions import db
from app.services.dashboard import dashboard_summary


@bp.get("/dashboard")
def dashboard():
    return jsonify({"ok": True, **dashboard_summary(db.session)}), 200
