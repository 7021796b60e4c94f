"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("recipient_id", sa.String(), primary_key=True),
        # Nullable on purpose: a missing flag falls back to its per-channel default.
        sa.Column("is_inbox_enabled", sa.Boolean(), nullable=True),
        sa.Column("is_email_enabled", sa.Boolean(), nullable=True),
        sa.Column("is_webhook_enabled", sa.Boolean(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("blocked_inbox_or_channels", postgresql.JSONB(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.String(), primary_key=True),
        # Avoid index=True here because we create explicit indexes below.
        sa.Column("recipient_id", sa.String(), nullable=False),
        sa.Column("sender_service_id", sa.String(), nullable=True),
        sa.Column("sender_user_id", sa.String(), nullable=True),
        sa.Column("time_to_live_seconds", sa.Integer(), nullable=True),
        sa.Column("is_pending", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_messages_recipient_id", "messages", ["recipient_id"])
    op.create_index("ix_messages_recipient_created", "messages", ["recipient_id", "created_at"])

    op.create_table(
        "message_statuses",
        sa.Column("message_id", sa.String(), primary_key=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "sender_services",
        sa.Column("recipient_id", sa.String(), primary_key=True),
        sa.Column("sender_service_id", sa.String(), primary_key=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_contacted_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("recipient_id", sa.String(), nullable=False),
        sa.Column("message_id", sa.String(), nullable=False),
        sa.Column("channels_json", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])
    op.create_index("ix_notifications_message_id", "notifications", ["message_id"])
    op.create_index(
        "ix_notifications_recipient_message",
        "notifications",
        ["recipient_id", "message_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_recipient_message", table_name="notifications")
    op.drop_index("ix_notifications_message_id", table_name="notifications")
    op.drop_index("ix_notifications_recipient_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("sender_services")
    op.drop_table("message_statuses")
    op.drop_index("ix_messages_recipient_created", table_name="messages")
    op.drop_index("ix_messages_recipient_id", table_name="messages")
    op.drop_table("messages")
    op.drop_table("profiles")
