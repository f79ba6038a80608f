from __future__ import annotations

from typing import List, Optional

from flask import current_app
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models.question import Question, QuestionCategory
from app.services.errors import NotFound, ReferentialIntegrityError, ValidationError
from app.utils.validators import clean_str


def get_category(session: Session, category_id: int) -> QuestionCategory:
    obj = session.get(QuestionCategory, category_id)
    if not obj:
        raise NotFound(f"Category {category_id} not found.")
    return obj


def list_categories(session: Session) -> List[QuestionCategory]:
    return (
        session.query(QuestionCategory)
        .order_by(func.lower(QuestionCategory.name).asc(), QuestionCategory.id.asc())
        .all()
    )


def create_category(session: Session, *, name: str, description: Optional[str] = None) -> QuestionCategory:
    name = clean_str(name)
    if not name:
        raise ValidationError({"name": "Nome é obrigatório."})
    cat = QuestionCategory(name=name, description=clean_str(description, max_len=2000))
    session.add(cat)
    session.flush()
    return cat


def update_category(
    session: Session,
    category_id: int,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> QuestionCategory:
    cat = get_category(session, category_id)
    if name is not None:
        name = clean_str(name)
        if not name:
            raise ValidationError({"name": "Nome não pode ficar em branco."})
        cat.name = name
    if description is not None:
        cat.description = clean_str(description, max_len=2000)
    session.flush()
    return cat


def delete_category(session: Session, category_id: int) -> None:
    cat = get_category(session, category_id)
    in_use = session.query(Question).filter(Question.category_id == category_id).count()
    if in_use:
        raise ReferentialIntegrityError(
            f"Category {cat.name!r} is still used by {in_use} question(s); move or delete them first."
        )
    session.delete(cat)
    session.flush()
    current_app.logger.info("question category deleted id=%s", category_id)
