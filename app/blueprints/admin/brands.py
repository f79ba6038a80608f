# app/blueprints/admin/brands.py
from flask import jsonify

from . import bp

from app.extensions import db, limiter
from app.services.errors import ValidationError
from app.services.identity import current_user_id
from app.utils.helpers import arg_int, json_body, ok
from app.services.brands import (
    list_brand_statuses as svc_list_brand_statuses,
    create_brand_status as svc_create_brand_status,
    update_brand_status as svc_update_brand_status,
    delete_brand_status as svc_delete_brand_status,
    list_brands as svc_list_brands,
    create_brand as svc_create_brand,
    update_brand as svc_update_brand,
    delete_brand as svc_delete_brand,
    move_brand as svc_move_brand,
    get_brand as svc_get_brand,
    get_brand_history as svc_get_brand_history,
)

STATUS_PATCH_KEYS = ("name", "color", "order")
BRAND_PATCH_KEYS = ("name", "description", "responsible", "value", "deadline", "order", "status_id")


def _status_ref(data: dict, key: str, *, required: bool = False):
    raw = data.get(key)
    if raw in (None, ""):
        if required:
            raise ValidationError({key: f"{key} is required."})
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError({key: f"{key} must be an integer."})


# ---- statuses ----------------------------------------------------------------

@bp.get("/brand-statuses")
def list_brand_statuses():
    rows = svc_list_brand_statuses(db.session)
    return jsonify({"ok": True, "items": [s.to_dict() for s in rows]}), 200


@bp.post("/brand-statuses")
@limiter.limit("60 per minute")
def create_brand_status():
    data = json_body()
    status = svc_create_brand_status(
        db.session, name=data.get("name"), color=data.get("color"), order=data.get("order")
    )
    db.session.commit()
    return ok(201, status=status.to_dict())


@bp.put("/brand-statuses/<int:status_id>")
@limiter.limit("60 per minute")
def update_brand_status(status_id: int):
    data = json_body()
    patch = {k: data[k] for k in STATUS_PATCH_KEYS if k in data}
    status = svc_update_brand_status(db.session, status_id, **patch)
    db.session.commit()
    return ok(status=status.to_dict())


@bp.delete("/brand-statuses/<int:status_id>")
@limiter.limit("30 per minute")
def delete_brand_status(status_id: int):
    svc_delete_brand_status(db.session, status_id)
    db.session.commit()
    return ok(deleted=status_id)


# ---- brands ------------------------------------------------------------------

@bp.get("/brands")
def list_brands():
    rows = svc_list_brands(db.session, status_id=arg_int("status_id"))
    return jsonify({"ok": True, "items": [b.to_dict() for b in rows]}), 200


@bp.post("/brands")
@limiter.limit("60 per minute")
def create_brand():
    data = json_body()
    brand = svc_create_brand(
        db.session,
        name=data.get("name"),
        status_id=_status_ref(data, "status_id"),
        description=data.get("description"),
        responsible=data.get("responsible"),
        value=data.get("value", 0),
        deadline=data.get("deadline"),
        order=data.get("order"),
        created_by=current_user_id(),
    )
    db.session.commit()
    return ok(201, brand=brand.to_dict())


@bp.put("/brands/<int:brand_id>")
@limiter.limit("60 per minute")
def update_brand(brand_id: int):
    data = json_body()
    patch = {k: data[k] for k in BRAND_PATCH_KEYS if k in data}
    if "status_id" in patch:
        patch["status_id"] = _status_ref(patch, "status_id")
    brand = svc_update_brand(db.session, brand_id, moved_by=current_user_id(), **patch)
    db.session.commit()
    return ok(brand=brand.to_dict())


@bp.delete("/brands/<int:brand_id>")
@limiter.limit("30 per minute")
def delete_brand(brand_id: int):
    svc_delete_brand(db.session, brand_id)
    db.session.commit()
    return ok(deleted=brand_id)


@bp.post("/brands/<int:brand_id>/move")
@limiter.limit("120 per minute")
def move_brand(brand_id: int):
    data = json_body()
    entry = svc_move_brand(
        db.session,
        brand_id,
        from_status_id=_status_ref(data, "from_status_id"),
        to_status_id=_status_ref(data, "to_status_id", required=True),
        moved_by=current_user_id(),
    )
    db.session.commit()
    brand = svc_get_brand(db.session, brand_id)
    return ok(
        moved=entry is not None,
        brand=brand.to_dict(),
        history=entry.to_dict() if entry else None,
    )


@bp.get("/brands/<int:brand_id>/history")
def brand_history(brand_id: int):
    rows = svc_get_brand_history(db.session, brand_id)
    return jsonify({"ok": True, "items": [h.to_dict() for h in rows]}), 200
