from __future__ import annotations

from dataclasses import dataclass
import logging

from courier.domain.messages import Channel, Profile
from courier.domain.results import FailureReason
from courier.services.stores import ProfileStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecipientAllowed:
    profile: Profile
    blocked_channels: frozenset[Channel]


@dataclass(frozen=True)
class RecipientDenied:
    reason: FailureReason


async def check_recipient(
    store: ProfileStore,
    *,
    recipient_id: str,
    sender_service_id: str,
    log_prefix: str = "ProfileGate",
) -> RecipientAllowed | RecipientDenied:
    """Apply inbox-level policy for one recipient and sender.

    Checks run in a fixed order: profile existence, the master inbox switch,
    then the per-sender block list. ``InfrastructureError`` from the store
    propagates; the caller must not translate it into a denial, otherwise the
    message content would be dropped for good.
    """
    profile = await store.find_by_recipient(recipient_id)
    if profile is None:
        logger.warning("%s|RESULT=%s", log_prefix, FailureReason.PROFILE_NOT_FOUND.value)
        return RecipientDenied(FailureReason.PROFILE_NOT_FOUND)

    blocked_channels = frozenset(profile.blocked_channels_for(sender_service_id))
    logger.debug(
        "%s|BLOCKED_CHANNELS=%s",
        log_prefix,
        ",".join(sorted(channel.value for channel in blocked_channels)),
    )

    if not profile.is_inbox_enabled:
        logger.warning("%s|RESULT=%s", log_prefix, FailureReason.MASTER_INBOX_DISABLED.value)
        return RecipientDenied(FailureReason.MASTER_INBOX_DISABLED)

    if Channel.INBOX in blocked_channels:
        logger.warning("%s|RESULT=%s", log_prefix, FailureReason.SENDER_BLOCKED.value)
        return RecipientDenied(FailureReason.SENDER_BLOCKED)

    return RecipientAllowed(profile=profile, blocked_channels=blocked_channels)
