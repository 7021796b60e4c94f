from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# JSONB on Postgres, plain JSON elsewhere (SQLite in local runs and tests).
JsonColumn = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class Profile(Base):
    __tablename__ = "profiles"

    recipient_id: Mapped[str] = mapped_column(String, primary_key=True)
    # Nullable flags keep "never set" distinguishable from an explicit false.
    is_inbox_enabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_email_enabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_webhook_enabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    # sender_service_id -> list of blocked channel names.
    blocked_inbox_or_channels: Mapped[dict[str, Any] | None] = mapped_column(JsonColumn, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_recipient_created", "recipient_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    recipient_id: Mapped[str] = mapped_column(String, index=True)
    sender_service_id: Mapped[str | None] = mapped_column(String, nullable=True)
    sender_user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    time_to_live_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Read APIs hide pending messages; the flag only ever goes from true to false.
    is_pending: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class MessageStatus(Base):
    __tablename__ = "message_statuses"

    message_id: Mapped[str] = mapped_column(String, primary_key=True)
    status: Mapped[str] = mapped_column(String)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class SenderService(Base):
    __tablename__ = "sender_services"

    # One row per (recipient, sender) pair; version only moves forward.
    recipient_id: Mapped[str] = mapped_column(String, primary_key=True)
    sender_service_id: Mapped[str] = mapped_column(String, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    last_contacted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        # At most one tracking record per message; retries reuse it.
        Index("ix_notifications_recipient_message", "recipient_id", "message_id", unique=True),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Partition key for the notification store.
    recipient_id: Mapped[str] = mapped_column(String, index=True)
    message_id: Mapped[str] = mapped_column(String, index=True)
    channels_json: Mapped[dict[str, Any]] = mapped_column(JsonColumn)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
