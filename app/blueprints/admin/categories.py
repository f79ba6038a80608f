# app/blueprints/admin/categories.py
from flask import current_app, jsonify

from . import bp  # the single admin blueprint

from app.extensions import db, limiter
from app.utils.helpers import json_body, ok
from app.services.categories import (
    list_categories as svc_list_categories,
    create_category as svc_create_category,
    update_category as svc_update_category,
    delete_category as svc_delete_category,
)


@bp.get("/categories")
def list_categories():
    rows = svc_list_categories(db.session)
    return jsonify({"ok": True, "items": [c.to_dict() for c in rows]}), 200


@bp.post("/categories")
@limiter.limit("60 per minute")
def create_category():
    data = json_body()
    cat = svc_create_category(db.session, name=data.get("name"), description=data.get("description"))
    db.session.commit()
    current_app.logger.info("question category created id=%s", cat.id)
    return ok(201, category=cat.to_dict())


@bp.put("/categories/<int:category_id>")
@limiter.limit("60 per minute")
def update_category(category_id: int):
    data = json_body()
    cat = svc_update_category(
        db.session,
        category_id,
        name=data.get("name"),
        description=data.get("description"),
    )
    db.session.commit()
    return ok(category=cat.to_dict())


@bp.delete("/categories/<int:category_id>")
@limiter.limit("30 per minute")
def delete_category(category_id: int):
    svc_delete_category(db.session, category_id)
    db.session.commit()
    return ok(deleted=category_id)
