from courier.services.activities.message_status import run_status_update
from courier.services.activities.notification_factory import (
    create_notification_record,
    new_notification_id,
)
from courier.services.activities.planner import plan_channels
from courier.services.activities.planning_stage import run_planning_stage
from courier.services.activities.profile_gate import (
    RecipientAllowed,
    RecipientDenied,
    check_recipient,
)
from courier.services.activities.sender_history import record_sender_contact
from courier.services.activities.storage_stage import run_storage_stage

__all__ = [
    "RecipientAllowed",
    "RecipientDenied",
    "check_recipient",
    "run_storage_stage",
    "plan_channels",
    "record_sender_contact",
    "create_notification_record",
    "new_notification_id",
    "run_planning_stage",
    "run_status_update",
]
