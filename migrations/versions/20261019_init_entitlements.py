"""initial entitlement schema

Revision ID: 20261019_init
Revises:
Create Date: 2026-10-19

Subscriptions, reconciled payments, per-chapter usage counters, audit events
and the read-only learning path tables written by the content service.
"""
from alembic import op
import sqlalchemy as sa


revision = "20261019_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("scope", sa.String(length=64), nullable=False),
        sa.Column(
            "plan_type", sa.Enum("basic", "premium", name="plan_type"), nullable=False
        ),
        sa.Column("plan_amount", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("daily_chat_limit", sa.Integer, nullable=False),
        sa.Column("monthly_mcq_limit", sa.Integer, nullable=False),
        sa.Column(
            "max_learning_paths_per_payment",
            sa.Integer,
            nullable=False,
            server_default="1",
        ),
        sa.Column(
            "learning_paths_saved", sa.Integer, nullable=False, server_default="0"
        ),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False),
        sa.Column("external_payment_id", sa.String, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint(
            "external_payment_id", name="uq_subscriptions_external_payment_id"
        ),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    # one active record per user and scope
    op.create_index(
        "uq_subscriptions_active_scope",
        "subscriptions",
        ["user_id", "scope"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active"),
    )
    op.create_index(
        "ix_subscriptions_expiry_active",
        "subscriptions",
        ["expiry_date", "is_active"],
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column(
            "purpose",
            sa.Enum("career_access", "learning_path_save", name="payment_purpose"),
            nullable=False,
        ),
        sa.Column("learning_path_id", sa.String(length=64), nullable=True),
        sa.Column("external_payment_id", sa.String, nullable=False),
        sa.Column("order_id", sa.String, nullable=True),
        sa.Column(
            "status",
            sa.Enum("completed", "refunded", name="payment_status"),
            nullable=False,
        ),
        sa.Column(
            "subscription_id",
            sa.Integer,
            sa.ForeignKey("subscriptions.id"),
            nullable=True,
        ),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint(
            "external_payment_id", name="uq_payments_external_payment_id"
        ),
    )
    op.create_index("ix_payments_user_id", "payments", ["user_id"])

    op.create_table(
        "chat_usage",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("chapter_id", sa.String(length=64), nullable=False),
        sa.Column("period_key", sa.String(length=10), nullable=False),  # YYYY-MM-DD
        sa.Column("used", sa.Integer, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.PrimaryKeyConstraint("user_id", "chapter_id"),
    )
    op.create_table(
        "mcq_usage",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("chapter_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("month", sa.Integer, nullable=False),
        sa.Column("used", sa.Integer, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.PrimaryKeyConstraint("user_id", "chapter_id"),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("event", sa.String, nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_events_user_id", "events", ["user_id"])

    op.create_table(
        "learning_paths",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String, nullable=True),
        sa.Column("structure", sa.JSON, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_table(
        "chapter_progress",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("learning_path_id", sa.String(length=64), nullable=False),
        sa.Column("chapter_id", sa.String(length=64), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("score", sa.Float, nullable=True),
        sa.PrimaryKeyConstraint("user_id", "learning_path_id", "chapter_id"),
    )


def downgrade() -> None:
    op.drop_table("chapter_progress")
    op.drop_table("learning_paths")
    op.drop_index("ix_events_user_id", table_name="events")
    op.drop_table("events")
    op.drop_table("mcq_usage")
    op.drop_table("chat_usage")
    op.drop_index("ix_payments_user_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_subscriptions_expiry_active", table_name="subscriptions")
    op.drop_index("uq_subscriptions_active_scope", table_name="subscriptions")
    op.drop_index("ix_subscriptions_user_id", table_name="subscriptions")
    op.drop_table("subscriptions")
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ("payment_status", "payment_purpose", "plan_type"):
            sa.Enum(name=name).drop(bind, checkfirst=True)
