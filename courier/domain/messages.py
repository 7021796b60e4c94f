from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationInfo, field_validator


NonEmptyString = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

# Time-to-live bounds accepted upstream for a message (1 hour to 7 days).
MIN_TIME_TO_LIVE_SECONDS = 3600
MAX_TIME_TO_LIVE_SECONDS = 604800
DEFAULT_TIME_TO_LIVE_SECONDS = MIN_TIME_TO_LIVE_SECONDS

# Profile flag defaults differ on purpose: inbox and webhook are opt-in, email is opt-out.
INBOX_ENABLED_BY_DEFAULT = False
EMAIL_ENABLED_BY_DEFAULT = True
WEBHOOK_ENABLED_BY_DEFAULT = False


class Channel(str, Enum):
    # Channels a recipient can block per sender service; INBOX gates storage itself.
    INBOX = "INBOX"
    EMAIL = "EMAIL"
    WEBHOOK = "WEBHOOK"


class NotificationChannel(str, Enum):
    EMAIL = "EMAIL"
    WEBHOOK = "WEBHOOK"


class NotificationAddressSource(str, Enum):
    PROFILE_ADDRESS = "PROFILE_ADDRESS"
    DEFAULT_ADDRESS = "DEFAULT_ADDRESS"


class MessageStatusValue(str, Enum):
    ACCEPTED = "ACCEPTED"
    THROTTLED = "THROTTLED"
    FAILED = "FAILED"
    PROCESSED = "PROCESSED"
    REJECTED = "REJECTED"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: Annotated[str, StringConstraints(min_length=10, max_length=120)]
    markdown: Annotated[str, StringConstraints(min_length=80, max_length=10000)]
    due_date: datetime | None = None


class SenderMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    department_name: NonEmptyString
    organization_name: NonEmptyString
    service_name: NonEmptyString
    # Sender services handling sensitive content forbid insecure channels such as email.
    require_secure_channels: bool = False


class MessageMetadata(BaseModel):
    """Message attributes without the content body, as exposed to channel senders."""

    model_config = ConfigDict(frozen=True)

    id: NonEmptyString
    recipient_id: NonEmptyString
    sender_service_id: NonEmptyString
    sender_user_id: NonEmptyString
    time_to_live_seconds: int = Field(
        default=DEFAULT_TIME_TO_LIVE_SECONDS,
        ge=MIN_TIME_TO_LIVE_SECONDS,
        le=MAX_TIME_TO_LIVE_SECONDS,
    )
    created_at: datetime = Field(default_factory=_utc_now)


class MessageEvent(MessageMetadata):
    """Inbound "message created" event consumed by both activities.

    The same event may be delivered more than once; nothing in it changes
    between deliveries.
    """

    content: MessageContent
    sender_metadata: SenderMetadata
    # Version of the sender service at send time; recorded in the sender history.
    service_version: int = Field(default=0, ge=0)

    def message_metadata(self) -> MessageMetadata:
        return MessageMetadata.model_validate(
            self.model_dump(include=set(MessageMetadata.model_fields))
        )


class Profile(BaseModel):
    """Read-only snapshot of a recipient profile."""

    recipient_id: NonEmptyString
    is_inbox_enabled: bool = INBOX_ENABLED_BY_DEFAULT
    is_email_enabled: bool = EMAIL_ENABLED_BY_DEFAULT
    is_webhook_enabled: bool = WEBHOOK_ENABLED_BY_DEFAULT
    email: str | None = None
    blocked_inbox_or_channels: dict[str, set[Channel]] = Field(default_factory=dict)
    version: int = Field(default=0, ge=0)

    @field_validator("is_inbox_enabled", "is_email_enabled", "is_webhook_enabled", mode="before")
    @classmethod
    def _absent_flag_uses_default(cls, value: Any, info: ValidationInfo) -> Any:
        # Stored documents use null for "never set"; treat it exactly like a missing key.
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("blocked_inbox_or_channels", mode="before")
    @classmethod
    def _absent_block_list_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def blocked_channels_for(self, sender_service_id: str) -> set[Channel]:
        return set(self.blocked_inbox_or_channels.get(sender_service_id) or ())


class EmailChannelTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    address_source: NotificationAddressSource = NotificationAddressSource.PROFILE_ADDRESS
    to_address: NonEmptyString


class WebhookChannelTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: NonEmptyString


class NotificationChannels(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: EmailChannelTarget | None = None
    webhook: WebhookChannelTarget | None = None

    def activated(self) -> list[NotificationChannel]:
        channels: list[NotificationChannel] = []
        if self.email is not None:
            channels.append(NotificationChannel.EMAIL)
        if self.webhook is not None:
            channels.append(NotificationChannel.WEBHOOK)
        return channels


class Notification(BaseModel):
    """Tracking record for the channels activated for one message."""

    id: NonEmptyString
    recipient_id: NonEmptyString
    message_id: NonEmptyString
    channels: NotificationChannels


class NotificationEvent(BaseModel):
    # Handed to downstream per-channel senders; carries everything they need without another lookup.
    content: MessageContent
    message: MessageMetadata
    sender_metadata: SenderMetadata
    notification_id: NonEmptyString
