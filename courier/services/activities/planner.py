from __future__ import annotations

from collections.abc import Iterable
import logging

from courier.domain.messages import (
    Channel,
    EmailChannelTarget,
    NotificationAddressSource,
    NotificationChannels,
    Profile,
    SenderMetadata,
    WebhookChannelTarget,
)


logger = logging.getLogger(__name__)


def _email_target(
    profile: Profile,
    blocked_channels: set[Channel],
    sender_metadata: SenderMetadata,
    log_prefix: str,
) -> EmailChannelTarget | None:
    # Email is on unless the profile explicitly disabled it.
    enabled_in_profile = profile.is_email_enabled
    blocked_for_service = Channel.EMAIL in blocked_channels
    # Senders that require secure channels veto email whatever the recipient prefers.
    allowed_by_sender = not sender_metadata.require_secure_channels
    has_address = profile.email is not None

    will_notify = enabled_in_profile and not blocked_for_service and allowed_by_sender and has_address
    logger.debug(
        "%s|CHANNEL=EMAIL|PROFILE_ENABLED=%s|SERVICE_BLOCKED=%s|SENDER_ALLOWED=%s|PROFILE_EMAIL=%s|WILL_NOTIFY=%s",
        log_prefix,
        enabled_in_profile,
        blocked_for_service,
        allowed_by_sender,
        has_address,
        will_notify,
    )
    if not will_notify:
        return None
    return EmailChannelTarget(
        address_source=NotificationAddressSource.PROFILE_ADDRESS,
        to_address=profile.email,
    )


def _webhook_target(
    profile: Profile,
    blocked_channels: set[Channel],
    default_webhook_url: str,
    log_prefix: str,
) -> WebhookChannelTarget | None:
    # Webhook is off unless the profile explicitly enabled it.
    enabled_in_profile = profile.is_webhook_enabled
    blocked_for_service = Channel.WEBHOOK in blocked_channels

    will_notify = enabled_in_profile and not blocked_for_service
    logger.debug(
        "%s|CHANNEL=WEBHOOK|PROFILE_ENABLED=%s|SERVICE_BLOCKED=%s|WILL_NOTIFY=%s",
        log_prefix,
        enabled_in_profile,
        blocked_for_service,
        will_notify,
    )
    if not will_notify:
        return None
    return WebhookChannelTarget(url=default_webhook_url)


def plan_channels(
    profile: Profile,
    blocked_channels: Iterable[Channel],
    sender_metadata: SenderMetadata,
    *,
    default_webhook_url: str,
    log_prefix: str = "NotificationPlanner",
) -> NotificationChannels | None:
    """Decide which notification channels to activate for a stored message.

    Returns ``None`` when no channel is eligible. That is an ordinary outcome,
    not an error: a recipient may legitimately have nothing to notify on.
    """
    blocked = set(blocked_channels)
    channels = NotificationChannels(
        email=_email_target(profile, blocked, sender_metadata, log_prefix),
        webhook=_webhook_target(profile, blocked, default_webhook_url, log_prefix),
    )
    if not channels.activated():
        return None
    return channels
