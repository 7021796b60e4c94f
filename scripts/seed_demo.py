from __future__ import annotations

import argparse
import asyncio
from uuid import uuid4

from courier.core.logging import configure_logging
from courier.domain.messages import Channel, MessageContent, MessageEvent, SenderMetadata
from courier.persistence.db import build_engine, build_session_factory
from courier.persistence.repos import messages as messages_repo
from courier.persistence.repos import profiles as profiles_repo
from courier.services.queue import create_redis_pool, enqueue_created_message


DEMO_RECIPIENT_ID = "AAABBB01C02D345E"
DEMO_SENDER_SERVICE_ID = "demo-service"


def build_demo_event(recipient_id: str, sender_service_id: str) -> MessageEvent:
    # Keep demo content inside the subject/markdown length bounds enforced on intake.
    return MessageEvent(
        id=uuid4().hex,
        recipient_id=recipient_id,
        sender_service_id=sender_service_id,
        sender_user_id="demo-user",
        content=MessageContent(
            subject="Your demo message has arrived",
            markdown=(
                "# Demo message\n\n"
                "This message was enqueued by the seed script to exercise the storage "
                "and notification activities end to end."
            ),
        ),
        sender_metadata=SenderMetadata(
            department_name="Demo Department",
            organization_name="Demo Organization",
            service_name="Demo Service",
        ),
        service_version=1,
    )


async def _main(args: argparse.Namespace) -> None:
    configure_logging()
    engine = build_engine()
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        await profiles_repo.save_profile(
            session,
            args.recipient_id,
            is_inbox_enabled=True,
            is_webhook_enabled=args.webhook,
            email=args.email,
            blocked_inbox_or_channels={
                "blocked-service": [Channel.INBOX.value],
            },
        )
        event = build_demo_event(args.recipient_id, args.sender_service_id)
        await messages_repo.create_pending_message(session, event.message_metadata())
        await session.commit()
    await engine.dispose()
    redis = await create_redis_pool()
    try:
        job_id = await enqueue_created_message(redis, event)
    finally:
        await redis.aclose()
    print(f"enqueued {job_id}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo profile and enqueue one message.")
    parser.add_argument("--recipient-id", default=DEMO_RECIPIENT_ID)
    parser.add_argument("--sender-service-id", default=DEMO_SENDER_SERVICE_ID)
    parser.add_argument("--email", default="demo@example.com")
    parser.add_argument("--webhook", action="store_true", help="Enable the webhook channel on the profile.")
    asyncio.run(_main(parser.parse_args()))


if __name__ == "__main__":
    main()
