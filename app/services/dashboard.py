from __future__ import annotations

from sqlalchemy import case
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models.brand import Brand, BrandStatus
from app.models.question import Question
from app.services.feedback import session_stats


def question_counts(session: Session) -> dict:
    row = session.query(
        func.count(Question.id),
        func.coalesce(func.sum(case((Question.is_active.is_(True), 1), else_=0)), 0),
        func.coalesce(func.sum(case((Question.product_id.is_(None), 1), else_=0)), 0),
    ).one()
    total, active, general = (int(v or 0) for v in row)
    return {"total": total, "active": active, "general": general, "product": total - general}


def brand_pipeline(session: Session) -> list:
    """One row per status (empty columns included), in board order."""
    rows = (
        session.query(
            BrandStatus,
            func.count(Brand.id),
            func.coalesce(func.sum(Brand.value), 0),
        )
        .outerjoin(Brand, Brand.status_id == BrandStatus.id)
        .group_by(BrandStatus.id)
        .order_by(BrandStatus.order.asc(), BrandStatus.id.asc())
        .all()
    )
    return [
        {**status.to_dict(), "brand_count": int(count), "total_value": float(total or 0)}
        for status, count, total in rows
    ]


def dashboard_summary(session: Session) -> dict:
    pipeline = brand_pipeline(session)
    return {
        "sessions": session_stats(session),
        "questions": question_counts(session),
        "brands": {
            "by_status": pipeline,
            "total": sum(p["brand_count"] for p in pipeline),
            "total_value": round(sum(p["total_value"] for p in pipeline), 2),
        },
    }
