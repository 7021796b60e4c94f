from __future__ import annotations

import json
import os
from pathlib import Path
from uuid import uuid4

from courier.domain.messages import MessageContent


def _safe_segment(value: str) -> str:
    # Ids become path segments; refuse anything that could escape the storage root.
    if not value or value in {".", ".."} or "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"invalid blob key segment: {value!r}")
    return value


def build_blob_path(root: Path, message_id: str, recipient_id: str) -> Path:
    # Deterministic location per (recipient, message) so a retried write lands on the same blob.
    return root / _safe_segment(recipient_id) / f"{_safe_segment(message_id)}.json"


def write_content(root: Path, message_id: str, recipient_id: str, content: MessageContent) -> Path:
    # Write to a sibling temp file then rename so readers never observe a half-written blob.
    path = build_blob_path(root, message_id, recipient_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{uuid4().hex}.tmp")
    try:
        tmp_path.write_text(content.model_dump_json(), encoding="utf-8")
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
    return path


def read_content(root: Path, message_id: str, recipient_id: str) -> MessageContent | None:
    path = build_blob_path(root, message_id, recipient_id)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return MessageContent.model_validate(json.loads(raw))
