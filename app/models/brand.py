from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index, func, text

from app.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class BrandStatus(db.Model):
    """A kanban column of the brand-partnership pipeline."""
    __tablename__ = "brand_statuses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    order = db.Column(db.Integer, nullable=False, server_default=text("0"))
    color = db.Column(db.String(7), nullable=False, server_default="#3B82F6")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "order": self.order, "color": self.color}

    def __repr__(self) -> str:
        return f"<BrandStatus id={self.id} name={self.name!r} order={self.order}>"


class Brand(db.Model):
    __tablename__ = "brands"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status_id = db.Column(
        db.Integer, db.ForeignKey("brand_statuses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    responsible = db.Column(db.String(255), nullable=True)
    value = db.Column(db.Numeric(12, 2), nullable=False, server_default=text("0"))
    deadline = db.Column(db.Date, nullable=True)
    order = db.Column(db.Integer, nullable=False, server_default=text("0"))

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow, server_default=func.now())

    status = db.relationship("BrandStatus", lazy="joined")

    __table_args__ = (
        CheckConstraint("value >= 0", name="ck_brands_value_non_negative"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status_id": self.status_id,
            "responsible": self.responsible,
            "value": float(self.value or 0),
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "order": self.order,
            "status": self.status.to_dict() if self.status else None,
        }

    def __repr__(self) -> str:
        return f"<Brand id={self.id} name={self.name!r} status={self.status_id}>"


class BrandHistory(db.Model):
    """
    Append-only audit of status moves; from_status_id is NULL on the creation record.
    Status names are copied on write so the row still reads after a status is deleted
    (both status ids are nulled then).
    """
    __tablename__ = "brand_history"

    id = db.Column(db.Integer, primary_key=True)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id", ondelete="CASCADE"), nullable=False)
    from_status_id = db.Column(db.Integer, db.ForeignKey("brand_statuses.id", ondelete="SET NULL"), nullable=True)
    to_status_id = db.Column(db.Integer, db.ForeignKey("brand_statuses.id", ondelete="SET NULL"), nullable=True)
    from_status_name = db.Column(db.String(120), nullable=True)
    to_status_name = db.Column(db.String(120), nullable=True)
    moved_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    moved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    from_status = db.relationship("BrandStatus", foreign_keys=[from_status_id], lazy="joined")
    to_status = db.relationship("BrandStatus", foreign_keys=[to_status_id], lazy="joined")

    __table_args__ = (
        Index("ix_brand_history_brand_moved_at", brand_id, moved_at),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "brand_id": self.brand_id,
            "from_status_id": self.from_status_id,
            "to_status_id": self.to_status_id,
            "from_status_name": self.from_status_name,
            "to_status_name": self.to_status_name,
            "moved_at": self.moved_at.isoformat() if self.moved_at else None,
            "moved_by": self.moved_by,
            "from_status": self.from_status.to_dict() if self.from_status else None,
            "to_status": self.to_status.to_dict() if self.to_status else None,
        }
