# app/blueprints/admin/feedback.py
from flask import current_app, jsonify, request

from . import bp

from app.extensions import db, limiter
from app.services.errors import ValidationError
from app.utils.helpers import arg_int, json_body, ok
from app.utils.validators import to_bool
from app.services.feedback import (
    list_sessions as svc_list_sessions,
    session_stats as svc_session_stats,
    get_session as svc_get_session,
    get_session_answers as svc_get_session_answers,
    start_session as svc_start_session,
    submit_answer as svc_submit_answer,
    complete_session as svc_complete_session,
    abandon_session as svc_abandon_session,
)


def _ref(data: dict, key: str):
    raw = data.get(key)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError({key: f"{key} must be an integer."})


@bp.get("/feedback/sessions")
def list_sessions():
    page = svc_list_sessions(
        db.session,
        q=(request.args.get("q") or "").strip() or None,
        status=(request.args.get("status") or "").strip() or None,
        page=arg_int("page") or 1,
        per_page=arg_int("per_page") or current_app.config.get("FEEDBACK_SESSIONS_PER_PAGE", 10),
    )
    return jsonify({
        "ok": True,
        "items": [s.to_dict() for s in page.items],
        "pagination": page.to_dict(),
        "stats": svc_session_stats(db.session),
    }), 200


@bp.get("/feedback/sessions/<int:session_id>")
def get_session(session_id: int):
    fs = svc_get_session(db.session, session_id)
    return jsonify({"ok": True, "session": fs.to_dict()}), 200


@bp.get("/feedback/sessions/<int:session_id>/answers")
def get_session_answers(session_id: int):
    data = svc_get_session_answers(db.session, session_id)
    return jsonify({"ok": True, **data}), 200


@bp.post("/feedback/sessions")
@limiter.limit("60 per minute")
def start_session():
    data = json_body()
    fs = svc_start_session(
        db.session,
        customer_id=_ref(data, "customer_id"),
        user_email=data.get("user_email"),
        box_id=_ref(data, "box_id"),
        edition_id=_ref(data, "edition_id"),
    )
    db.session.commit()
    return ok(201, session=fs.to_dict())


@bp.post("/feedback/sessions/<int:session_id>/answers")
@limiter.limit("240 per minute")
def submit_answer(session_id: int):
    data = json_body()
    question_id = _ref(data, "question_id")
    if question_id is None:
        raise ValidationError({"question_id": "question_id is required."})
    answer = svc_submit_answer(
        db.session,
        session_id,
        question_id=question_id,
        answer=data.get("answer"),
        product_id=_ref(data, "product_id"),
        delivery=to_bool(data.get("delivery")),
    )
    db.session.commit()
    return ok(answer=answer.to_dict())


@bp.post("/feedback/sessions/<int:session_id>/complete")
@limiter.limit("60 per minute")
def complete_session(session_id: int):
    data = json_body()
    fs = svc_complete_session(
        db.session,
        session_id,
        completion_badge=data.get("completion_badge"),
        final_message=data.get("final_message"),
    )
    db.session.commit()
    return ok(session=fs.to_dict())


@bp.post("/feedback/sessions/<int:session_id>/abandon")
@limiter.limit("60 per minute")
def abandon_session(session_id: int):
    fs = svc_abandon_session(db.session, session_id)
    db.session.commit()
    return ok(session=fs.to_dict())
