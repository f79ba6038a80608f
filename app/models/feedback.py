from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index, UniqueConstraint, func

from app.extensions import db

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_ABANDONED = "abandoned"
SESSION_STATUSES = (STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_ABANDONED)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_ABANDONED)

GROUP_PRODUCT = "product"
GROUP_EXPERIMENTAI = "experimentai"
GROUP_DELIVERY = "delivery"
FEEDBACK_GROUPS = (GROUP_PRODUCT, GROUP_EXPERIMENTAI, GROUP_DELIVERY)


def _utcnow():
    return datetime.now(timezone.utc)


class FeedbackSession(db.Model):
    __tablename__ = "feedback_sessions"

    id = db.Column(db.Integer, primary_key=True)
    # Anonymous respondents carry user_email instead of a customer row
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    user_email = db.Column(db.String(255), nullable=True)
    box_id = db.Column(db.Integer, db.ForeignKey("boxes.id", ondelete="SET NULL"), nullable=True)
    edition_id = db.Column(db.Integer, db.ForeignKey("editions.id", ondelete="SET NULL"), nullable=True)

    session_status = db.Column(db.String(20), nullable=False, default=STATUS_IN_PROGRESS, server_default=STATUS_IN_PROGRESS)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completion_badge = db.Column(db.String(120), nullable=True)
    final_message = db.Column(db.Text, nullable=True)

    customer = db.relationship("Customer", lazy="joined")
    box = db.relationship("Box", lazy="joined")
    edition = db.relationship("Edition", lazy="joined")
    answers = db.relationship(
        "FeedbackAnswer",
        backref="session",
        lazy="select",
        order_by="[FeedbackAnswer.created_at, FeedbackAnswer.id]",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "session_status IN ('in_progress','completed','abandoned')",
            name="ck_feedback_sessions_status_valid",
        ),
        # completed_at is set iff the session completed
        CheckConstraint(
            "(session_status = 'completed') = (completed_at IS NOT NULL)",
            name="ck_feedback_sessions_completed_at",
        ),
        Index("ix_feedback_sessions_status_started", "session_status", "started_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.session_status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "user_email": self.user_email,
            "box_id": self.box_id,
            "edition_id": self.edition_id,
            "session_status": self.session_status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "completion_badge": self.completion_badge,
            "final_message": self.final_message,
            "customer": self.customer.to_ref() if self.customer else None,
            "box": self.box.to_ref() if self.box else None,
            "edition": self.edition.to_ref() if self.edition else None,
        }

    def __repr__(self) -> str:
        return f"<FeedbackSession id={self.id} status={self.session_status}>"


class FeedbackAnswer(db.Model):
    __tablename__ = "feedback_answers"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.Integer, db.ForeignKey("feedback_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Orphaned (NULL) when the question is deleted; the snapshot below keeps the meaning
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id", ondelete="SET NULL"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    feedback_group = db.Column(db.String(20), nullable=False, server_default=GROUP_EXPERIMENTAI)

    # Snapshot taken at answer time
    question_text = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(32), nullable=False)
    answer = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow, server_default=func.now())

    product = db.relationship("Product", lazy="joined")

    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_feedback_answers_session_question"),
        CheckConstraint(
            "feedback_group IN ('product','experimentai','delivery')",
            name="ck_feedback_answers_group_valid",
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question_id": self.question_id,
            "product_id": self.product_id,
            "feedback_group": self.feedback_group,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "answer": self.answer,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<FeedbackAnswer id={self.id} session={self.session_id} q={self.question_id} group={self.feedback_group}>"
