from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from courier.core.config import Settings
from courier.core.errors import (
    ContentStoreError,
    MessageStatusStoreError,
    MessageStoreError,
    NotificationStoreError,
    PermanentStoreError,
    ProfileStoreError,
    SenderHistoryStoreError,
)
from courier.domain import models
from courier.domain.messages import (
    MessageContent,
    MessageStatusValue,
    Notification,
    NotificationChannels,
    Profile,
)
from courier.persistence import blobs
from courier.persistence.repos import message_statuses as message_statuses_repo
from courier.persistence.repos import messages as messages_repo
from courier.persistence.repos import notifications as notifications_repo
from courier.persistence.repos import profiles as profiles_repo
from courier.persistence.repos import sender_services as sender_services_repo


class ProfileStore(Protocol):
    async def find_by_recipient(self, recipient_id: str) -> Profile | None: ...


class ContentBlobStore(Protocol):
    async def put(self, message_id: str, recipient_id: str, content: MessageContent) -> None: ...


class ReadableContentBlobStore(ContentBlobStore, Protocol):
    async def get(self, message_id: str, recipient_id: str) -> MessageContent | None: ...


class MessageRecordStore(Protocol):
    async def set_pending(self, message_id: str, recipient_id: str, pending: bool = False) -> None: ...


class SenderHistoryStore(Protocol):
    async def upsert_version(self, recipient_id: str, sender_service_id: str, version: int) -> None: ...


class NotificationStore(Protocol):
    # Returns the stored record; a message that already has one keeps it.
    async def create(self, notification: Notification, partition_key: str) -> Notification: ...


class MessageStatusStore(Protocol):
    async def upsert_status(self, message_id: str, status: MessageStatusValue) -> None: ...


def profile_from_row(row: models.Profile) -> Profile:
    # Pass nullable columns through untouched; the snapshot model owns the defaults.
    return Profile.model_validate(
        {
            "recipient_id": row.recipient_id,
            "is_inbox_enabled": row.is_inbox_enabled,
            "is_email_enabled": row.is_email_enabled,
            "is_webhook_enabled": row.is_webhook_enabled,
            "email": row.email,
            "blocked_inbox_or_channels": row.blocked_inbox_or_channels,
            "version": row.version,
        }
    )


class SqlProfileStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_recipient(self, recipient_id: str) -> Profile | None:
        try:
            async with self._session_factory() as session:
                row = await profiles_repo.get_profile(session, recipient_id)
                if row is None:
                    return None
                return profile_from_row(row)
        except SQLAlchemyError as exc:
            raise ProfileStoreError(f"profile lookup failed: {exc}") from exc
        except ValidationError as exc:
            # A stored document that no longer decodes is a query failure, not a missing profile.
            raise ProfileStoreError(f"stored profile is not decodable: {exc}") from exc


class FileContentBlobStore:
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    async def put(self, message_id: str, recipient_id: str, content: MessageContent) -> None:
        try:
            await asyncio.to_thread(blobs.write_content, self._root, message_id, recipient_id, content)
        except ValueError as exc:
            raise PermanentStoreError(str(exc)) from exc
        except OSError as exc:
            raise ContentStoreError(f"content write failed: {exc}") from exc

    async def get(self, message_id: str, recipient_id: str) -> MessageContent | None:
        try:
            return await asyncio.to_thread(blobs.read_content, self._root, message_id, recipient_id)
        except ValueError as exc:
            raise PermanentStoreError(str(exc)) from exc
        except OSError as exc:
            raise ContentStoreError(f"content read failed: {exc}") from exc


class SqlMessageRecordStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def set_pending(self, message_id: str, recipient_id: str, pending: bool = False) -> None:
        if pending:
            raise ValueError("the pending flag can only be cleared")
        try:
            async with self._session_factory() as session:
                if await messages_repo.clear_pending(session, message_id, recipient_id):
                    await session.commit()
                    return
                owner = await messages_repo.get_owner(session, message_id)
        except SQLAlchemyError as exc:
            raise MessageStoreError(f"pending flag update failed: {exc}") from exc
        # Intake writes the record before enqueueing, so a miss here will not heal on retry.
        if owner is None:
            raise PermanentStoreError(f"message {message_id} has no stored record")
        raise PermanentStoreError(f"message {message_id} belongs to another recipient")


class SqlSenderHistoryStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert_version(self, recipient_id: str, sender_service_id: str, version: int) -> None:
        try:
            async with self._session_factory() as session:
                await sender_services_repo.upsert_version(session, recipient_id, sender_service_id, version)
                await session.commit()
        except SQLAlchemyError as exc:
            raise SenderHistoryStoreError(f"sender history upsert failed: {exc}") from exc


class SqlNotificationStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, notification: Notification, partition_key: str) -> Notification:
        if partition_key != notification.recipient_id:
            raise ValueError("notifications are partitioned by recipient_id")
        try:
            async with self._session_factory() as session:
                row = await notifications_repo.add_notification_once(
                    session,
                    notification_id=notification.id,
                    recipient_id=notification.recipient_id,
                    message_id=notification.message_id,
                    channels_json=notification.channels.model_dump(mode="json", exclude_none=True),
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise NotificationStoreError(f"notification create failed: {exc}") from exc
        if row.id == notification.id:
            return notification
        return Notification(
            id=row.id,
            recipient_id=row.recipient_id,
            message_id=row.message_id,
            channels=NotificationChannels.model_validate(row.channels_json),
        )


class SqlMessageStatusStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert_status(self, message_id: str, status: MessageStatusValue) -> None:
        try:
            async with self._session_factory() as session:
                await message_statuses_repo.upsert_status(session, message_id, status.value)
                await session.commit()
        except SQLAlchemyError as exc:
            raise MessageStatusStoreError(f"message status upsert failed: {exc}") from exc


@dataclass(frozen=True)
class Stores:
    profiles: ProfileStore
    contents: ReadableContentBlobStore
    messages: MessageRecordStore
    sender_history: SenderHistoryStore
    notifications: NotificationStore
    statuses: MessageStatusStore


def build_sql_stores(session_factory: async_sessionmaker[AsyncSession], settings: Settings) -> Stores:
    return Stores(
        profiles=SqlProfileStore(session_factory),
        contents=FileContentBlobStore(settings.content_storage_dir),
        messages=SqlMessageRecordStore(session_factory),
        sender_history=SqlSenderHistoryStore(session_factory),
        notifications=SqlNotificationStore(session_factory),
        statuses=SqlMessageStatusStore(session_factory),
    )
