"""initial schema: catalog refs, questionnaire, feedback, brand pipeline

Revision ID: 0a1c5e7d9b21
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0a1c5e7d9b21"
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text("CURRENT_TIMESTAMP")


def _timestamps(*, updated: bool = False):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW))
    return cols


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(updated=True),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    # ---- referenced catalog ----
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_customers_email", "customers", ["email"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("brand", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "boxes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("theme", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "editions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("edition", sa.String(length=120), nullable=False),
        *_timestamps(),
    )

    # ---- questionnaire ----
    op.create_table(
        "question_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "questions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category_id", sa.Integer(),
                  sa.ForeignKey("question_categories.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=True),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(length=32), nullable=False, server_default="multiple_choice"),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(updated=True),
        sa.CheckConstraint(
            "question_type IN ('multiple_choice','emoji_rating','text','boolean')",
            name="ck_questions_type_valid",
        ),
        sa.CheckConstraint("order_index >= 1", name="ck_questions_order_positive"),
    )
    op.create_index("ix_questions_category_id", "questions", ["category_id"], unique=False)
    op.create_index("ix_questions_scope_order", "questions", ["product_id", "order_index"], unique=False)

    op.create_table(
        "question_options",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("question_id", sa.Integer(), sa.ForeignKey("questions.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("option_text", sa.Text(), nullable=False),
        sa.Column("option_value", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
    )
    op.create_index(
        "ix_question_options_question_order", "question_options", ["question_id", "order_index"], unique=False
    )

    # ---- feedback ----
    op.create_table(
        "feedback_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("user_email", sa.String(length=255), nullable=True),
        sa.Column("box_id", sa.Integer(), sa.ForeignKey("boxes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("edition_id", sa.Integer(), sa.ForeignKey("editions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("session_status", sa.String(length=20), nullable=False, server_default="in_progress"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completion_badge", sa.String(length=120), nullable=True),
        sa.Column("final_message", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "session_status IN ('in_progress','completed','abandoned')",
            name="ck_feedback_sessions_status_valid",
        ),
        sa.CheckConstraint(
            "(session_status = 'completed') = (completed_at IS NOT NULL)",
            name="ck_feedback_sessions_completed_at",
        ),
    )
    op.create_index("ix_feedback_sessions_customer_id", "feedback_sessions", ["customer_id"], unique=False)
    op.create_index(
        "ix_feedback_sessions_status_started", "feedback_sessions", ["session_status", "started_at"], unique=False
    )

    op.create_table(
        "feedback_answers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.Integer(),
                  sa.ForeignKey("feedback_sessions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question_id", sa.Integer(), sa.ForeignKey("questions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
        sa.Column("feedback_group", sa.String(length=20), nullable=False, server_default="experimentai"),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(length=32), nullable=False),
        sa.Column("answer", sa.JSON(), nullable=True),
        *_timestamps(updated=True),
        sa.UniqueConstraint("session_id", "question_id", name="uq_feedback_answers_session_question"),
        sa.CheckConstraint(
            "feedback_group IN ('product','experimentai','delivery')",
            name="ck_feedback_answers_group_valid",
        ),
    )
    op.create_index("ix_feedback_answers_session_id", "feedback_answers", ["session_id"], unique=False)

    # ---- brand pipeline ----
    op.create_table(
        "brand_statuses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("color", sa.String(length=7), nullable=False, server_default="#3B82F6"),
        *_timestamps(),
    )
    op.create_table(
        "brands",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status_id", sa.Integer(),
                  sa.ForeignKey("brand_statuses.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("responsible", sa.String(length=255), nullable=True),
        sa.Column("value", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("deadline", sa.Date(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(updated=True),
        sa.CheckConstraint("value >= 0", name="ck_brands_value_non_negative"),
    )
    op.create_index("ix_brands_status_id", "brands", ["status_id"], unique=False)

    op.create_table(
        "brand_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("brand_id", sa.Integer(), sa.ForeignKey("brands.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_status_id", sa.Integer(),
                  sa.ForeignKey("brand_statuses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("to_status_id", sa.Integer(),
                  sa.ForeignKey("brand_statuses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("from_status_name", sa.String(length=120), nullable=True),
        sa.Column("to_status_name", sa.String(length=120), nullable=True),
        sa.Column("moved_at", sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column("moved_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    op.create_index("ix_brand_history_brand_moved_at", "brand_history", ["brand_id", "moved_at"], unique=False)


def downgrade():
    op.drop_index("ix_brand_history_brand_moved_at", table_name="brand_history")
    op.drop_table("brand_history")
    op.drop_index("ix_brands_status_id", table_name="brands")
    op.drop_table("brands")
    op.drop_table("brand_statuses")
    op.drop_index("ix_feedback_answers_session_id", table_name="feedback_answers")
    op.drop_table("feedback_answers")
    op.drop_index("ix_feedback_sessions_status_started", table_name="feedback_sessions")
    op.drop_index("ix_feedback_sessions_customer_id", table_name="feedback_sessions")
    op.drop_table("feedback_sessions")
    op.drop_index("ix_question_options_question_order", table_name="question_options")
    op.drop_table("question_options")
    op.drop_index("ix_questions_scope_order", table_name="questions")
    op.drop_index("ix_questions_category_id", table_name="questions")
    op.drop_table("questions")
    op.drop_table("question_categories")
    op.drop_table("editions")
    op.drop_table("boxes")
    op.drop_table("products")
    op.drop_index("ix_customers_email", table_name="customers")
    op.drop_table("customers")
    op.drop_table("users")
