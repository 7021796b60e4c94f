from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, Field, TypeAdapter

from courier.core.errors import InfrastructureError
from courier.domain.messages import (
    Channel,
    MessageEvent,
    MessageStatusValue,
    NonEmptyString,
    NotificationEvent,
    Profile,
)


T = TypeVar("T")


class FailureReason(str, Enum):
    BAD_DATA = "BAD_DATA"
    MASTER_INBOX_DISABLED = "MASTER_INBOX_DISABLED"
    PERMANENT_ERROR = "PERMANENT_ERROR"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    SENDER_BLOCKED = "SENDER_BLOCKED"


class StorageSuccess(BaseModel):
    kind: Literal["SUCCESS"] = "SUCCESS"
    profile: Profile
    # Ordered list rather than a set so the payload stays JSON-serializable between activities.
    blocked_inbox_or_channels: list[Channel] = Field(default_factory=list)


class StorageFailure(BaseModel):
    kind: Literal["FAILURE"] = "FAILURE"
    reason: FailureReason


StageResult = Annotated[Union[StorageSuccess, StorageFailure], Field(discriminator="kind")]
stage_result_adapter: TypeAdapter[StageResult] = TypeAdapter(StageResult)


class PlanSome(BaseModel):
    kind: Literal["some"] = "some"
    has_email: bool
    has_webhook: bool
    notification_event: NotificationEvent


class PlanNone(BaseModel):
    kind: Literal["none"] = "none"


PlanResult = Annotated[Union[PlanSome, PlanNone], Field(discriminator="kind")]
plan_result_adapter: TypeAdapter[PlanResult] = TypeAdapter(PlanResult)


class PlanningInput(BaseModel):
    # Only a SUCCESS storage payload may reach planning; a FAILURE payload fails to decode.
    created_message_event: MessageEvent
    storage_result: StorageSuccess


class StatusUpdateInput(BaseModel):
    message_id: NonEmptyString
    status: MessageStatusValue


class StatusUpdateResult(BaseModel):
    kind: Literal["SUCCESS", "FAILURE"]


@dataclass(frozen=True)
class Ok(Generic[T]):
    # Any business outcome, terminal failures included.
    value: T


@dataclass(frozen=True)
class Fatal:
    # Infrastructure fault; the scheduler must retry the whole activity.
    error: InfrastructureError
    step: str


ActivityOutcome = Union[Ok[T], Fatal]
