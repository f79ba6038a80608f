from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd
from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.brand import BrandStatus
from app.models.product import Product
from app.models.question import Question, QuestionCategory
from app.services.categories import create_category
from app.services.questions import create_question

DEFAULT_BRAND_STATUSES: Tuple[Tuple[str, str], ...] = (
    ("Prospecção", "#3B82F6"),
    ("Em negociação", "#F59E0B"),
    ("Contrato enviado", "#8B5CF6"),
    ("Fechado", "#10B981"),
    ("Perdido", "#EF4444"),
)

# Workbook header -> field
QUESTION_COLUMNS = {
    "Categoria": "category",
    "Pergunta": "question_text",
    "Tipo": "question_type",
    "Produto": "product",
    "Obrigatória": "is_required",
    "Ordem": "order_index",
    "Opções": "options",
}


def _norm(val: object) -> str:
    """Lower/trim and collapse inner whitespace; None/NaN -> ''."""
    if val is None or (isinstance(val, float) and pd.isna(val)):
        return ""
    return re.sub(r"\s+", " ", str(val).strip().lower())


def _cell(val: object) -> Optional[str]:
    if val is None or (isinstance(val, float) and pd.isna(val)):
        return None
    s = str(val).strip()
    return s or None


def read_question_sheet(path: str) -> pd.DataFrame:
    suffix = Path(path).suffix.lower()
    if suffix in (".xlsx", ".xls"):
        df = pd.read_excel(path)
    else:
        df = pd.read_csv(path)
    df = df.rename(columns=QUESTION_COLUMNS)

    missing = {"category", "question_text", "question_type"} - set(df.columns)
    if missing:
        raise ValueError(f"Seed file {path!r} is missing column(s): {', '.join(sorted(missing))}")

    for col in ("product", "options", "is_required"):
        if col not in df.columns:
            df[col] = None
    if "order_index" not in df.columns:
        df["order_index"] = None
    df["order_index"] = pd.to_numeric(df["order_index"], errors="coerce")
    return df


def import_questions(session: Session, path: str) -> Tuple[int, int]:
    """
    Load categories and questions from a CSV/XLSX sheet.
    Idempotent on (category name, question text, product): re-running skips known rows.
    Returns: (inserted_count, skipped_count)
    """
    df = read_question_sheet(path)

    categories = {_norm(c.name): c for c in session.query(QuestionCategory).all()}
    products = {_norm(p.name): p for p in session.query(Product).all()}
    existing = {
        (q.category_id, _norm(q.question_text), q.product_id)
        for q in session.query(Question).all()
    }
    next_order = {}

    inserted = skipped = 0
    for idx, row in df.iterrows():
        cat_name = _cell(row["category"])
        text = _cell(row["question_text"])
        if not cat_name or not text:
            raise ValueError(f"Row {idx + 2}: category and question text are required.")

        product_id = None
        product_name = _cell(row["product"])
        if product_name:
            product = products.get(_norm(product_name))
            if product is None:
                raise ValueError(f"Row {idx + 2}: unknown product {product_name!r}.")
            product_id = product.id

        category = categories.get(_norm(cat_name))
        if category is None:
            category = create_category(session, name=cat_name)
            categories[_norm(cat_name)] = category

        key = (category.id, _norm(text), product_id)
        if key in existing:
            skipped += 1
            continue

        order_index = row["order_index"]
        if pd.isna(order_index):
            if product_id not in next_order:
                scope = session.query(func.max(Question.order_index))
                scope = scope.filter(
                    Question.product_id.is_(None) if product_id is None else Question.product_id == product_id
                )
                next_order[product_id] = (scope.scalar() or 0) + 1
            order_index = next_order[product_id]
        order_index = int(order_index)
        next_order[product_id] = max(next_order.get(product_id, 0), order_index + 1)

        labels: List[str] = [o.strip() for o in (_cell(row["options"]) or "").split("|") if o.strip()]
        create_question(
            session,
            category_id=category.id,
            product_id=product_id,
            question_text=text,
            question_type=_cell(row["question_type"]),
            is_required=_norm(row["is_required"]) in ("1", "true", "sim", "yes", "s"),
            order_index=order_index,
            options=[{"option_text": label} for label in labels] or None,
        )
        existing.add(key)
        inserted += 1

    current_app.logger.info("question seed %s: inserted=%s skipped=%s", path, inserted, skipped)
    return inserted, skipped


def seed_brand_statuses(session: Session) -> int:
    """Create the default pipeline columns that are missing (matched by name). Returns how many were added."""
    known = {_norm(s.name) for s in session.query(BrandStatus).all()}
    current_max = session.query(func.max(BrandStatus.order)).scalar() or 0
    added = 0
    for name, color in DEFAULT_BRAND_STATUSES:
        if _norm(name) in known:
            continue
        current_max += 1
        session.add(BrandStatus(name=name, color=color, order=current_max))
        added += 1
    session.flush()
    return added
