from __future__ import annotations

from typing import List

from sqlalchemy import CheckConstraint, Index, func, text

from app.extensions import db

"""
Questionnaire models: ordering & scope notes (doc only)

• questions
  - ix_questions_scope_order: (product_id, order_index)
    Scope is "general" (product_id IS NULL) or one product. Siblings are read
    sorted by (order_index, id); gaps and ties are tolerated, so no UNIQUE index.
  - ck_questions_type_valid: question_type restricted to the four answer types.

• question_options
  - ix_question_options_question_order: (question_id, order_index) for ordered lists.
"""

# Keep simple text+CHECK for evolvable types (no DB enum migration pain)
TYPE_MULTIPLE_CHOICE = "multiple_choice"
TYPE_EMOJI_RATING = "emoji_rating"
TYPE_TEXT = "text"
TYPE_BOOLEAN = "boolean"
QUESTION_TYPES = (TYPE_MULTIPLE_CHOICE, TYPE_EMOJI_RATING, TYPE_TEXT, TYPE_BOOLEAN)


class QuestionCategory(db.Model):
    __tablename__ = "question_categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}

    def __repr__(self) -> str:
        return f"<QuestionCategory id={self.id} name={self.name!r}>"


class Question(db.Model):
    __tablename__ = "questions"
    __allow_unmapped__ = True

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("question_categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    # NULL = general question (applies to every product)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=True
    )
    question_text = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(32), nullable=False, server_default=TYPE_MULTIPLE_CHOICE)
    is_required = db.Column(db.Boolean, nullable=False, server_default=text("false"))
    is_active = db.Column(db.Boolean, nullable=False, server_default=text("true"))
    order_index = db.Column(db.Integer, nullable=False, server_default=text("1"))

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    category = db.relationship("QuestionCategory", lazy="joined")
    product = db.relationship("Product", lazy="joined")
    # No delete cascade: options are removed explicitly before the question (see services.questions)
    options: List["QuestionOption"] = db.relationship(
        "QuestionOption",
        backref="question",
        lazy="select",
        order_by="[QuestionOption.order_index, QuestionOption.id]",
        cascade="save-update, merge",
    )

    __table_args__ = (
        Index("ix_questions_scope_order", product_id, order_index),
        CheckConstraint(
            "question_type IN ('multiple_choice','emoji_rating','text','boolean')",
            name="ck_questions_type_valid",
        ),
        CheckConstraint("order_index >= 1", name="ck_questions_order_positive"),
    )

    @property
    def is_general(self) -> bool:
        return self.product_id is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "product_id": self.product_id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "is_required": bool(self.is_required),
            "is_active": bool(self.is_active),
            "order_index": self.order_index,
            "category": self.category.to_dict() if self.category else None,
            "product": self.product.to_ref() if self.product else None,
            "options": [o.to_dict() for o in self.options],
        }

    def __repr__(self) -> str:
        return (
            f"<Question id={self.id} type={self.question_type} product={self.product_id} "
            f"order={self.order_index} active={self.is_active}>"
        )


class QuestionOption(db.Model):
    __tablename__ = "question_options"

    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(
        db.Integer, db.ForeignKey("questions.id", ondelete="RESTRICT"), nullable=False
    )
    option_text = db.Column(db.Text, nullable=False)
    option_value = db.Column(db.Numeric(10, 2), nullable=False, server_default=text("0"))
    order_index = db.Column(db.Integer, nullable=False, server_default=text("1"))

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_question_options_question_order", question_id, order_index),
    )

    def to_dict(self) -> dict:
        value = self.option_value
        if value is not None and float(value).is_integer():
            value = int(value)
        elif value is not None:
            value = float(value)
        return {
            "id": self.id,
            "question_id": self.question_id,
            "option_text": self.option_text,
            "option_value": value,
            "order_index": self.order_index,
        }

    def __repr__(self) -> str:
        return f"<QuestionOption id={self.id} q={self.question_id} text={self.option_text!r} value={self.option_value}>"
