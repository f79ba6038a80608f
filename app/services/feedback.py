from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models.box import Box, Edition
from app.models.customer import Customer
from app.models.feedback import (
    GROUP_DELIVERY,
    GROUP_EXPERIMENTAI,
    GROUP_PRODUCT,
    SESSION_STATUSES,
    STATUS_ABANDONED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    FeedbackAnswer,
    FeedbackSession,
    _utcnow,
)
from app.models.product import Product
from app.models.question import TYPE_MULTIPLE_CHOICE, Question
from app.services.errors import Conflict, NotFound, ValidationError
from app.services.question_rules import render_answer
from app.utils.validators import clean_str, is_valid_email

DEFAULT_PER_PAGE = 10


@dataclass(frozen=True)
class Page:
    items: List
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        return max(1, -(-self.total // self.per_page)) if self.per_page else 1

    def to_dict(self) -> dict:
        return {"total": self.total, "page": self.page, "per_page": self.per_page, "pages": self.pages}


def get_session(session: Session, session_id: int) -> FeedbackSession:
    obj = session.get(FeedbackSession, session_id)
    if not obj:
        raise NotFound(f"Feedback session {session_id} not found.")
    return obj


def list_sessions(
    session: Session,
    *,
    q: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
) -> Page:
    """Newest first. `q` matches respondent email, customer name/email, box theme and edition."""
    if status and status not in SESSION_STATUSES:
        raise ValidationError({"status": f"Unknown status {status!r}."})
    page = max(1, int(page or 1))
    per_page = max(1, int(per_page or DEFAULT_PER_PAGE))

    query = (
        session.query(FeedbackSession)
        .outerjoin(Customer, FeedbackSession.customer_id == Customer.id)
        .outerjoin(Box, FeedbackSession.box_id == Box.id)
        .outerjoin(Edition, FeedbackSession.edition_id == Edition.id)
    )
    if status:
        query = query.filter(FeedbackSession.session_status == status)
    if q and q.strip():
        like = f"%{q.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(FeedbackSession.user_email).like(like),
                func.lower(Customer.name).like(like),
                func.lower(Customer.email).like(like),
                func.lower(Box.theme).like(like),
                func.lower(Edition.edition).like(like),
            )
        )
    total = query.count()
    items = (
        query.order_by(FeedbackSession.started_at.desc(), FeedbackSession.id.desc())
        .limit(per_page)
        .offset((page - 1) * per_page)
        .all()
    )
    return Page(items=items, total=total, page=page, per_page=per_page)


def session_stats(session: Session) -> Dict[str, int]:
    rows = (
        session.query(FeedbackSession.session_status, func.count(FeedbackSession.id))
        .group_by(FeedbackSession.session_status)
        .all()
    )
    counts = {status: n for status, n in rows}
    return {
        "total": sum(counts.values()),
        "completed": counts.get(STATUS_COMPLETED, 0),
        "in_progress": counts.get(STATUS_IN_PROGRESS, 0),
        "abandoned": counts.get(STATUS_ABANDONED, 0),
    }


def start_session(
    session: Session,
    *,
    customer_id: Optional[int] = None,
    user_email: Optional[str] = None,
    box_id: Optional[int] = None,
    edition_id: Optional[int] = None,
) -> FeedbackSession:
    email = clean_str(user_email)
    if email and not is_valid_email(email):
        raise ValidationError({"user_email": "E-mail inválido."})
    for model, ref_id, label in (
        (Customer, customer_id, "Customer"),
        (Box, box_id, "Box"),
        (Edition, edition_id, "Edition"),
    ):
        if ref_id is not None and not session.get(model, ref_id):
            raise NotFound(f"{label} {ref_id} not found.")

    fs = FeedbackSession(
        customer_id=customer_id,
        user_email=email.lower() if email else None,
        box_id=box_id,
        edition_id=edition_id,
        session_status=STATUS_IN_PROGRESS,
        started_at=_utcnow(),
    )
    session.add(fs)
    session.flush()
    return fs


def _group_for(product_id: Optional[int], delivery: bool) -> str:
    if product_id is not None:
        return GROUP_PRODUCT
    if delivery:
        return GROUP_DELIVERY
    return GROUP_EXPERIMENTAI


def submit_answer(
    session: Session,
    session_id: int,
    *,
    question_id: int,
    answer: Any,
    product_id: Optional[int] = None,
    delivery: bool = False,
) -> FeedbackAnswer:
    """
    Upsert the answer for (session, question). The question text/type are copied onto
    the row so later edits or deletion of the question never change what was answered.
    """
    fs = get_session(session, session_id)
    if fs.is_terminal:
        raise Conflict(f"Session {session_id} is {fs.session_status}; answers are closed.")

    q = session.get(Question, question_id)
    if not q:
        raise NotFound(f"Question {question_id} not found.")

    if answer is None or (isinstance(answer, str) and not answer.strip()):
        if q.is_required:
            raise ValidationError({"answer": "Resposta obrigatória."})
        value = None
    else:
        shown = render_answer(q.question_type, answer)
        if shown.warning:
            raise ValidationError({"answer": shown.warning})
        value = shown.value
        if q.question_type == TYPE_MULTIPLE_CHOICE:
            value = _chosen_option_text(q, value)

    if product_id is None:
        product_id = q.product_id
    if product_id is not None and not session.get(Product, product_id):
        raise NotFound(f"Product {product_id} not found.")

    row = (
        session.query(FeedbackAnswer)
        .filter(FeedbackAnswer.session_id == fs.id, FeedbackAnswer.question_id == q.id)
        .one_or_none()
    )
    if row is None:
        row = FeedbackAnswer(question_id=q.id)
        fs.answers.append(row)
    row.product_id = product_id
    row.feedback_group = _group_for(product_id, delivery)
    row.question_text = q.question_text
    row.question_type = q.question_type
    row.answer = value
    session.flush()
    return row


def _chosen_option_text(q: Question, value: Any) -> str:
    """Resolve a choice by option label (case-insensitive), then by option id."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    label = str(value).strip().casefold()
    for opt in q.options:
        if opt.option_text.strip().casefold() == label:
            return opt.option_text
    for opt in q.options:
        if label == str(opt.id):
            return opt.option_text
    raise ValidationError({"answer": f"Opção inválida: {value!r}."})


def _finish(session: Session, session_id: int, status: str) -> FeedbackSession:
    fs = get_session(session, session_id)
    if fs.session_status != STATUS_IN_PROGRESS:
        raise Conflict(f"Session {session_id} is already {fs.session_status}.")
    fs.session_status = status
    return fs


def complete_session(
    session: Session,
    session_id: int,
    *,
    completion_badge: Optional[str] = None,
    final_message: Optional[str] = None,
) -> FeedbackSession:
    fs = _finish(session, session_id, STATUS_COMPLETED)
    fs.completed_at = _utcnow()
    fs.completion_badge = clean_str(completion_badge, max_len=120)
    fs.final_message = clean_str(final_message, max_len=2000)
    session.flush()
    current_app.logger.info(json.dumps({
        "event": "feedback_session_completed",
        "session_id": fs.id,
        "answers": len(fs.answers),
    }))
    return fs


def abandon_session(session: Session, session_id: int) -> FeedbackSession:
    fs = _finish(session, session_id, STATUS_ABANDONED)
    session.flush()
    current_app.logger.info(json.dumps({"event": "feedback_session_abandoned", "session_id": fs.id}))
    return fs


def _answer_view(a: FeedbackAnswer) -> dict:
    data = a.to_dict()
    data["render"] = render_answer(a.question_type, a.answer).to_dict()
    return data


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _group_view(answers: List[FeedbackAnswer]) -> dict:
    return {
        "id": answers[0].id,
        "created_at": min(_aware(a.created_at) for a in answers).isoformat(),
        "answers": [_answer_view(a) for a in answers],
    }


def get_session_answers(session: Session, session_id: int) -> dict:
    """
    Partition a session's answers into product / experimentai / delivery groups.
    One product group per product; at most one group each for the other two.
    Every answer lands in exactly one group.
    """
    fs = get_session(session, session_id)
    answers = list(fs.answers)

    by_product: Dict[int, List[FeedbackAnswer]] = {}
    experimentai: List[FeedbackAnswer] = []
    delivery: List[FeedbackAnswer] = []
    for a in answers:
        if a.feedback_group == GROUP_PRODUCT and a.product_id is not None:
            by_product.setdefault(a.product_id, []).append(a)
        elif a.feedback_group == GROUP_DELIVERY:
            delivery.append(a)
        else:
            experimentai.append(a)

    product_groups = []
    for product_id, rows in by_product.items():
        group = _group_view(rows)
        product = rows[0].product
        group["product_id"] = product_id
        group["product_name"] = product.name if product else None
        product_groups.append(group)
    product_groups.sort(key=lambda g: (g["created_at"], g["product_id"]))

    return {
        "session": fs.to_dict(),
        "productFeedbacks": product_groups,
        "experimentaiFeedbacks": [_group_view(experimentai)] if experimentai else [],
        "deliveryFeedbacks": [_group_view(delivery)] if delivery else [],
    }
