from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flask import current_app
from sqlalchemy.orm import Session

from app.models.feedback import FeedbackAnswer
from app.models.product import Product
from app.models.question import TYPE_TEXT, Question, QuestionCategory, QuestionOption
from app.services.errors import NotFound, ValidationError
from app.services.question_rules import (
    OPTION_REQUIRED_TYPES,
    PATCH_CLEAR,
    PATCH_REPLACE,
    normalize_question_type,
    on_question_type_changed,
    validate_question_fields,
)
from app.utils.validators import clean_str, to_bool, to_decimal, to_int_or_none

DIRECTION_UP = "up"
DIRECTION_DOWN = "down"

# Distinguishes "not sent" from an explicit None (e.g. product_id=None -> general)
_UNSET: Any = object()


def _event(name: str, **fields) -> None:
    current_app.logger.info(json.dumps({"event": name, **fields}, default=str))


def get_question(session: Session, question_id: int) -> Question:
    obj = session.get(Question, question_id)
    if not obj:
        raise NotFound(f"Question {question_id} not found.")
    return obj


def list_questions(
    session: Session,
    *,
    product_id: Optional[int] = None,
    category_id: Optional[int] = None,
    general_only: bool = False,
    include_inactive: bool = True,
) -> List[Question]:
    query = session.query(Question)
    if general_only:
        query = query.filter(Question.product_id.is_(None))
    elif product_id is not None:
        query = query.filter(Question.product_id == product_id)
    if category_id is not None:
        query = query.filter(Question.category_id == category_id)
    if not include_inactive:
        query = query.filter(Question.is_active.is_(True))
    return query.order_by(Question.order_index.asc(), Question.id.asc()).all()


def _scope_siblings(session: Session, question: Question) -> List[Question]:
    """All questions sharing the question's scope (same product, or both general), sorted."""
    query = session.query(Question)
    if question.product_id is None:
        query = query.filter(Question.product_id.is_(None))
    else:
        query = query.filter(Question.product_id == question.product_id)
    return query.order_by(Question.order_index.asc(), Question.id.asc()).all()


def _require_refs(session: Session, category_id: Any, product_id: Optional[int]) -> None:
    if category_id and not session.get(QuestionCategory, category_id):
        raise NotFound(f"Category {category_id} not found.")
    if product_id is not None and not session.get(Product, product_id):
        raise NotFound(f"Product {product_id} not found.")


def _normalize_options(raw: Optional[Sequence[Any]]) -> List[Dict[str, Any]]:
    """Validate an incoming option list; positions become 1..n in list order."""
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError({"options": "Options must be a list."})
    out: List[Dict[str, Any]] = []
    errors: Dict[str, str] = {}
    for idx, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            errors[f"options[{idx}]"] = "Option must be an object."
            continue
        text = clean_str(item.get("option_text"), max_len=500)
        if not text:
            errors[f"options[{idx}].option_text"] = "Texto da opção é obrigatório."
        raw_value = item.get("option_value")
        try:
            value = to_decimal(raw_value) if raw_value is not None and raw_value != "" else Decimal(idx)
        except ValueError:
            errors[f"options[{idx}].option_value"] = "Valor da opção deve ser numérico."
            value = None
        try:
            option_id = to_int_or_none(item.get("id"))
        except (TypeError, ValueError):
            errors[f"options[{idx}].id"] = "Invalid option id."
            option_id = None
        out.append({"id": option_id, "option_text": text, "option_value": value, "order_index": idx})
    if errors:
        raise ValidationError(errors)
    return out


def _parse_order_index(value: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return value  # validate_question_fields reports it


def create_question(
    session: Session,
    *,
    category_id: Any,
    question_text: Optional[str],
    question_type: str,
    product_id: Optional[int] = None,
    is_required: bool = False,
    order_index: Any = 1,
    is_active: bool = True,
    options: Optional[Sequence[Any]] = None,
) -> Question:
    qt = normalize_question_type(question_type)
    wanted = _normalize_options(options)
    wanted = on_question_type_changed(wanted, qt).apply(wanted)

    order_index = _parse_order_index(order_index)
    errors = validate_question_fields(
        category_id=category_id,
        question_text=question_text,
        question_type=qt,
        order_index=order_index,
        option_count=len(wanted),
    )
    if errors:
        raise ValidationError(errors)
    _require_refs(session, category_id, product_id)

    q = Question(
        category_id=int(category_id),
        product_id=product_id,
        question_text=clean_str(question_text, max_len=2000),
        question_type=qt,
        is_required=to_bool(is_required),
        is_active=to_bool(is_active, default=True),
        order_index=order_index,
    )
    session.add(q)
    session.flush()  # populate q.id

    for pos, opt in enumerate(wanted, start=1):
        session.add(QuestionOption(
            question_id=q.id,
            option_text=opt["option_text"],
            option_value=opt["option_value"],
            order_index=pos,
        ))
    session.flush()
    session.expire(q, ["options"])
    _event("question_created", question_id=q.id, question_type=qt, product_id=product_id, options=len(wanted))
    return q


def _sync_options(session: Session, q: Question, wanted: List[Dict[str, Any]]) -> None:
    """
    Make q's options equal `wanted` (full desired list, in order).
    Match by id first, then by option_text, so re-sending the same list never duplicates rows.
    """
    existing = list(q.options)
    by_id = {o.id: o for o in existing}
    claimed = set()

    for item in wanted:
        if item.get("id") is not None and item["id"] not in by_id:
            raise NotFound(f"Option {item['id']} does not belong to question {q.id}.")

    plan: List[Tuple[Optional[QuestionOption], Dict[str, Any]]] = []
    for item in wanted:
        match = by_id.get(item.get("id")) if item.get("id") is not None else None
        if match is None:
            match = next(
                (o for o in existing if o.id not in claimed and o.option_text == item["option_text"]),
                None,
            )
        if match is not None:
            claimed.add(match.id)
        plan.append((match, item))

    for o in existing:
        if o.id not in claimed:
            session.delete(o)
    session.flush()

    for pos, (match, item) in enumerate(plan, start=1):
        if match is None:
            session.add(QuestionOption(
                question_id=q.id,
                option_text=item["option_text"],
                option_value=item["option_value"],
                order_index=pos,
            ))
        else:
            match.option_text = item["option_text"]
            match.option_value = item["option_value"]
            match.order_index = pos
    session.flush()
    session.expire(q, ["options"])


def update_question(
    session: Session,
    question_id: int,
    *,
    category_id: Any = _UNSET,
    product_id: Any = _UNSET,
    question_text: Any = _UNSET,
    question_type: Any = _UNSET,
    is_required: Any = _UNSET,
    is_active: Any = _UNSET,
    order_index: Any = _UNSET,
    options: Any = _UNSET,
) -> Question:
    q = get_question(session, question_id)

    new_category = q.category_id if category_id is _UNSET else category_id
    new_product = q.product_id if product_id is _UNSET else product_id
    new_text = q.question_text if question_text is _UNSET else question_text
    new_type = q.question_type if question_type is _UNSET else normalize_question_type(question_type)
    new_order = q.order_index if order_index is _UNSET else _parse_order_index(order_index)

    if options is _UNSET:
        current = list(q.options)
        patch = on_question_type_changed(current, new_type)
        final_count = len(patch.apply(current))
        wanted = None
    else:
        wanted = _normalize_options(options)
        patch = on_question_type_changed(wanted, new_type)
        wanted = patch.apply(wanted)
        final_count = len(wanted)

    errors = validate_question_fields(
        category_id=new_category,
        question_text=new_text,
        question_type=new_type,
        order_index=new_order,
        option_count=final_count,
    )
    if errors:
        raise ValidationError(errors)
    _require_refs(session, new_category, new_product)

    previous_type = q.question_type
    q.category_id = int(new_category)
    q.product_id = new_product
    q.question_text = clean_str(new_text, max_len=2000)
    q.question_type = new_type
    q.order_index = new_order
    if is_required is not _UNSET:
        q.is_required = to_bool(is_required)
    if is_active is not _UNSET:
        q.is_active = to_bool(is_active, default=True)
    session.flush()

    if wanted is not None:
        _sync_options(session, q, wanted)
    elif patch.action == PATCH_CLEAR:
        _sync_options(session, q, [])
    elif patch.action == PATCH_REPLACE:
        _sync_options(session, q, list(patch.options))

    if previous_type != new_type:
        _event("question_type_changed", question_id=q.id, from_type=previous_type, to_type=new_type,
               options=patch.action)
    return q


def delete_question(session: Session, question_id: int) -> None:
    """
    Options first, then the question. A failure while removing options raises before
    the question row is touched; the caller rolls the whole request back.
    """
    q = get_question(session, question_id)

    for opt in list(q.options):
        session.delete(opt)
    session.flush()
    session.expire(q, ["options"])

    # Answers keep their snapshot (question_text/question_type) and lose the live link
    session.query(FeedbackAnswer).filter(FeedbackAnswer.question_id == question_id).update(
        {FeedbackAnswer.question_id: None}, synchronize_session="fetch"
    )

    session.delete(q)
    session.flush()
    _event("question_deleted", question_id=question_id)


def reorder_question(session: Session, question_id: int, direction: str) -> Tuple[Question, Optional[Question]]:
    """
    Swap order_index with the adjacent sibling (same product scope, or both general).
    Both rows change in the current transaction; returns (question, swapped_with or None at an edge).
    """
    direction = (direction or "").strip().lower()
    if direction not in (DIRECTION_UP, DIRECTION_DOWN):
        raise ValidationError({"direction": "Direction must be 'up' or 'down'."})

    q = get_question(session, question_id)
    siblings = _scope_siblings(session, q)
    idx = next(i for i, s in enumerate(siblings) if s.id == q.id)
    target_idx = idx - 1 if direction == DIRECTION_UP else idx + 1
    if target_idx < 0 or target_idx >= len(siblings):
        return q, None

    neighbor = siblings[target_idx]
    if neighbor.order_index == q.order_index:
        # A tie cannot be swapped; make the scope dense first, keeping the current order
        for pos, s in enumerate(siblings, start=1):
            s.order_index = pos

    q.order_index, neighbor.order_index = neighbor.order_index, q.order_index
    session.flush()
    _event(
        "question_reordered",
        question_id=q.id,
        swapped_with=neighbor.id,
        direction=direction,
        product_id=q.product_id,
    )
    return q, neighbor


# ---- options -----------------------------------------------------------------

def get_option(session: Session, option_id: int) -> QuestionOption:
    obj = session.get(QuestionOption, option_id)
    if not obj:
        raise NotFound(f"Option {option_id} not found.")
    return obj


def list_options(session: Session, question_id: int) -> List[QuestionOption]:
    get_question(session, question_id)
    return (
        session.query(QuestionOption)
        .filter(QuestionOption.question_id == question_id)
        .order_by(QuestionOption.order_index.asc(), QuestionOption.id.asc())
        .all()
    )


def add_option(
    session: Session,
    question_id: int,
    *,
    option_text: Optional[str],
    option_value: Any = None,
    order_index: Any = None,
) -> QuestionOption:
    q = get_question(session, question_id)
    if q.question_type == TYPE_TEXT:
        raise ValidationError({"options": "Perguntas de texto livre não têm opções."})

    errors: Dict[str, str] = {}
    text = clean_str(option_text, max_len=500)
    if not text:
        errors["option_text"] = "Texto da opção é obrigatório."
    try:
        position = to_int_or_none(order_index)
        if position is not None and position < 1:
            raise ValueError()
    except (TypeError, ValueError):
        errors["order_index"] = "Ordem deve ser maior que 0."
        position = None
    if position is None:
        position = max((o.order_index for o in q.options), default=0) + 1
    try:
        value = to_decimal(option_value) if option_value not in (None, "") else Decimal(position)
    except ValueError:
        errors["option_value"] = "Valor da opção deve ser numérico."
    if errors:
        raise ValidationError(errors)

    opt = QuestionOption(question_id=q.id, option_text=text, option_value=value, order_index=position)
    session.add(opt)
    session.flush()
    session.expire(q, ["options"])
    return opt


def update_option(
    session: Session,
    option_id: int,
    *,
    option_text: Optional[str] = None,
    option_value: Any = None,
    order_index: Any = None,
) -> QuestionOption:
    opt = get_option(session, option_id)
    errors: Dict[str, str] = {}
    if option_text is not None:
        text = clean_str(option_text, max_len=500)
        if not text:
            errors["option_text"] = "Texto da opção não pode ficar em branco."
        else:
            opt.option_text = text
    if option_value is not None:
        try:
            opt.option_value = to_decimal(option_value)
        except ValueError:
            errors["option_value"] = "Valor da opção deve ser numérico."
    if order_index is not None:
        try:
            position = int(order_index)
            if position < 1:
                raise ValueError()
            opt.order_index = position
        except (TypeError, ValueError):
            errors["order_index"] = "Ordem deve ser maior que 0."
    if errors:
        session.expire(opt)
        raise ValidationError(errors)
    session.flush()
    return opt


def remove_option(session: Session, option_id: int) -> List[QuestionOption]:
    """Delete one option; returns the owning question's refreshed option list."""
    opt = get_option(session, option_id)
    question_id = opt.question_id
    q = session.get(Question, question_id)
    if q is not None and q.question_type in OPTION_REQUIRED_TYPES and len(q.options) <= 1:
        raise ValidationError({"options": "Adicione pelo menos uma opção (add at least one option)."})
    session.delete(opt)
    session.flush()
    if q is not None:
        session.expire(q, ["options"])
    return list_options(session, question_id)
