from __future__ import annotations


class CourierError(Exception):
    """Base error for Courier."""


class InfrastructureError(CourierError):
    """A collaborator store failed for reasons unrelated to the data itself.

    Activities never turn these into business results: they surface as a fatal
    signal so the scheduler re-runs the whole activity.
    """


class ProfileStoreError(InfrastructureError):
    """Profile lookup failed (store unreachable or query error)."""


class ContentStoreError(InfrastructureError):
    """Message content could not be written to blob storage."""


class MessageStoreError(InfrastructureError):
    """Message record update failed."""


class SenderHistoryStoreError(InfrastructureError):
    """Sender history upsert failed."""


class NotificationStoreError(InfrastructureError):
    """Notification record could not be created."""


class MessageStatusStoreError(InfrastructureError):
    """Message status upsert failed."""


class PermanentStoreError(CourierError):
    """A store rejected the request deterministically; retrying cannot succeed."""
