from __future__ import annotations

from courier.core.errors import CourierError
from courier.domain.messages import MessageContent, MessageStatusValue, Notification, Profile


class InMemoryProfileStore:
    def __init__(self, profiles: list[Profile] | None = None) -> None:
        self.profiles = {profile.recipient_id: profile for profile in profiles or []}
        self.lookups: list[str] = []
        self.fail_with: CourierError | None = None

    async def find_by_recipient(self, recipient_id: str) -> Profile | None:
        self.lookups.append(recipient_id)
        if self.fail_with is not None:
            raise self.fail_with
        return self.profiles.get(recipient_id)


class InMemoryContentBlobStore:
    def __init__(self) -> None:
        self.blobs: dict[tuple[str, str], str] = {}
        self.puts = 0
        self.fail_with: CourierError | None = None

    async def put(self, message_id: str, recipient_id: str, content: MessageContent) -> None:
        self.puts += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.blobs[(message_id, recipient_id)] = content.model_dump_json()

    async def get(self, message_id: str, recipient_id: str) -> MessageContent | None:
        raw = self.blobs.get((message_id, recipient_id))
        return MessageContent.model_validate_json(raw) if raw is not None else None


class InMemoryMessageRecordStore:
    def __init__(self) -> None:
        self.pending: dict[tuple[str, str], bool] = {}
        self.updates = 0
        self.fail_with: CourierError | None = None

    def add_pending(self, message_id: str, recipient_id: str) -> None:
        self.pending[(message_id, recipient_id)] = True

    async def set_pending(self, message_id: str, recipient_id: str, pending: bool = False) -> None:
        if pending:
            raise ValueError("the pending flag can only be cleared")
        self.updates += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.pending[(message_id, recipient_id)] = False


class InMemorySenderHistoryStore:
    def __init__(self) -> None:
        self.versions: dict[tuple[str, str], int] = {}
        self.upserts: list[tuple[str, str, int]] = []
        self.fail_with: CourierError | None = None

    async def upsert_version(self, recipient_id: str, sender_service_id: str, version: int) -> None:
        self.upserts.append((recipient_id, sender_service_id, version))
        if self.fail_with is not None:
            raise self.fail_with
        key = (recipient_id, sender_service_id)
        self.versions[key] = max(self.versions.get(key, version), version)


class InMemoryNotificationStore:
    def __init__(self) -> None:
        self.partitions: dict[str, dict[str, Notification]] = {}
        self.creates = 0
        self.fail_with: CourierError | None = None

    async def create(self, notification: Notification, partition_key: str) -> Notification:
        self.creates += 1
        if self.fail_with is not None:
            raise self.fail_with
        partition = self.partitions.setdefault(partition_key, {})
        for existing in partition.values():
            if existing.message_id == notification.message_id:
                return existing
        partition[notification.id] = notification
        return notification

    def all(self) -> list[Notification]:
        return [item for partition in self.partitions.values() for item in partition.values()]


class InMemoryMessageStatusStore:
    def __init__(self) -> None:
        self.statuses: dict[str, MessageStatusValue] = {}
        self.fail_with: CourierError | None = None

    async def upsert_status(self, message_id: str, status: MessageStatusValue) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.statuses[message_id] = status
