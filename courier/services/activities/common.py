from __future__ import annotations

import logging

from pydantic import ValidationError

from courier.core.errors import InfrastructureError
from courier.domain.results import Fatal
from courier.services.telemetry import increment_counter


def readable_report(exc: ValidationError) -> str:
    # Flatten pydantic errors into one log-friendly line: "<path>: <message>" pairs.
    parts = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg')}")
    return " / ".join(parts)


def log_prefix(activity: str, *, message_id: str, recipient_id: str) -> str:
    return f"{activity}|MESSAGE_ID={message_id}|RECIPIENT={recipient_id}"


def fatal(logger: logging.Logger, prefix: str, *, step: str, error: InfrastructureError) -> Fatal:
    # Infra faults leave the activity through the fatal channel only, never as business data.
    logger.error("%s|STEP=%s|ERROR=%s", prefix, step, error)
    increment_counter("activity.fatal")
    return Fatal(error=error, step=step)
