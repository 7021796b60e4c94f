from __future__ import annotations

import logging

from courier.domain.messages import MessageContent
from courier.services.stores import ContentBlobStore, MessageRecordStore


logger = logging.getLogger(__name__)


async def store_content(
    store: ContentBlobStore,
    *,
    message_id: str,
    recipient_id: str,
    content: MessageContent,
    log_prefix: str,
) -> None:
    # A retry after a crash mid-write overwrites the blob with identical bytes.
    await store.put(message_id, recipient_id, content)
    logger.debug("%s|CONTENT_STORED", log_prefix)


async def flip_visibility(
    store: MessageRecordStore,
    *,
    message_id: str,
    recipient_id: str,
    log_prefix: str,
) -> None:
    # Only call once the content is durable: readers start seeing the message from here on.
    await store.set_pending(message_id, recipient_id, False)
    logger.debug("%s|PENDING_CLEARED", log_prefix)
