from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import sys
from typing import Any

from courier.core.config import get_settings


class JsonFormatter(logging.Formatter):
    """Emit newline-delimited JSON logs with stable core fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


def configure_logging(level: str | None = None, *, json_output: bool | None = None) -> None:
    # Replace root handlers so repeated calls (tests, worker reloads) never double-emit.
    settings = get_settings()
    resolved_level = (level or settings.log_level).upper()
    use_json = settings.log_json if json_output is None else json_output

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(resolved_level)
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(resolved_level)
    root.addHandler(handler)
    # arq logs every job start/finish at INFO; keep it out of debug noise.
    logging.getLogger("arq").setLevel(max(logging.INFO, root.level))
