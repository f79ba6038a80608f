# app/blueprints/admin/questions.py
from flask import jsonify, request

from . import bp

from app.extensions import db, limiter
from app.services.errors import ValidationError
from app.utils.helpers import arg_bool, arg_int, json_body, ok
from app.services.questions import (
    list_questions as svc_list_questions,
    get_question as svc_get_question,
    create_question as svc_create_question,
    update_question as svc_update_question,
    delete_question as svc_delete_question,
    reorder_question as svc_reorder_question,
    list_options as svc_list_options,
    add_option as svc_add_option,
    update_option as svc_update_option,
    remove_option as svc_remove_option,
)

# Keys a PUT may carry; anything absent is left untouched
QUESTION_PATCH_KEYS = (
    "category_id", "product_id", "question_text", "question_type",
    "is_required", "is_active", "order_index", "options",
)


def _int_field(data: dict, key: str):
    raw = data.get(key)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError({key: f"{key} must be an integer."})


@bp.get("/questions")
def list_questions():
    scope = (request.args.get("scope") or "").strip().lower()
    rows = svc_list_questions(
        db.session,
        product_id=arg_int("product_id"),
        category_id=arg_int("category_id"),
        general_only=(scope == "general"),
        include_inactive=arg_bool("include_inactive", default=True),
    )
    return jsonify({"ok": True, "items": [q.to_dict() for q in rows]}), 200


@bp.get("/questions/<int:question_id>")
def get_question(question_id: int):
    q = svc_get_question(db.session, question_id)
    return jsonify({"ok": True, "question": q.to_dict()}), 200


@bp.post("/questions")
@limiter.limit("60 per minute")
def create_question():
    data = json_body()
    q = svc_create_question(
        db.session,
        category_id=_int_field(data, "category_id"),
        product_id=_int_field(data, "product_id"),
        question_text=data.get("question_text"),
        question_type=data.get("question_type"),
        is_required=data.get("is_required", False),
        order_index=data.get("order_index", 1),
        is_active=data.get("is_active", True),
        options=data.get("options"),
    )
    db.session.commit()
    return ok(201, question=q.to_dict())


@bp.put("/questions/<int:question_id>")
@limiter.limit("60 per minute")
def update_question(question_id: int):
    data = json_body()
    patch = {k: data[k] for k in QUESTION_PATCH_KEYS if k in data}
    for key in ("category_id", "product_id"):
        if key in patch:
            patch[key] = _int_field(patch, key)
    q = svc_update_question(db.session, question_id, **patch)
    db.session.commit()
    return ok(question=q.to_dict())


@bp.delete("/questions/<int:question_id>")
@limiter.limit("30 per minute")
def delete_question(question_id: int):
    svc_delete_question(db.session, question_id)
    db.session.commit()
    return ok(deleted=question_id)


@bp.post("/questions/<int:question_id>/move")
@limiter.limit("120 per minute")
def move_question(question_id: int):
    data = json_body()
    q, neighbor = svc_reorder_question(db.session, question_id, data.get("direction"))
    db.session.commit()
    return ok(
        moved=neighbor is not None,
        question=q.to_dict(),
        swapped_with=neighbor.to_dict() if neighbor else None,
    )


# ---- options -----------------------------------------------------------------

@bp.get("/questions/<int:question_id>/options")
def list_options(question_id: int):
    rows = svc_list_options(db.session, question_id)
    return jsonify({"ok": True, "items": [o.to_dict() for o in rows]}), 200


@bp.post("/questions/<int:question_id>/options")
@limiter.limit("120 per minute")
def add_option(question_id: int):
    data = json_body()
    opt = svc_add_option(
        db.session,
        question_id,
        option_text=data.get("option_text"),
        option_value=data.get("option_value"),
        order_index=data.get("order_index"),
    )
    db.session.commit()
    return ok(201, option=opt.to_dict())


@bp.put("/options/<int:option_id>")
@limiter.limit("120 per minute")
def update_option(option_id: int):
    data = json_body()
    opt = svc_update_option(
        db.session,
        option_id,
        option_text=data.get("option_text"),
        option_value=data.get("option_value"),
        order_index=data.get("order_index"),
    )
    db.session.commit()
    return ok(option=opt.to_dict())


@bp.delete("/options/<int:option_id>")
@limiter.limit("120 per minute")
def remove_option(option_id: int):
    remaining = svc_remove_option(db.session, option_id)
    db.session.commit()
    return ok(deleted=option_id, options=[o.to_dict() for o in remaining])
