"""Helpers for local document records."""

from __future__ import annotations

import re
from typing import Any

from ..core.clock import now_ms
from .models import DocumentRecord

PAGE_BREAK_TOKEN = "<!-- page-break -->"

# Structural markup the editor emits even for an empty draft.
_PLACEHOLDER_PREFIX = re.compile(r"^\s*#{1,6}\s*")


def has_meaningful_content(text: str) -> bool:
    """Return ``True`` if *text* holds anything beyond structural placeholders.

    Heading markers, page-break tokens and whitespace alone do not count.
    """
    for line in text.replace("\r\n", "\n").split("\n"):
        stripped = line.replace(PAGE_BREAK_TOKEN, "")
        stripped = _PLACEHOLDER_PREFIX.sub("", stripped).strip()
        if stripped:
            return True
    return False


def meaningful_text(text: str) -> str:
    """Return *text* if it has meaningful content, otherwise ``""``."""
    return text if has_meaningful_content(text) else ""


def create_empty_document(
    file_id: str, now: int | None = None
) -> DocumentRecord:
    """Create the record for a never-edited, never-synced document."""
    return DocumentRecord(
        file_id=file_id,
        text="",
        updated_at=now if now is not None else now_ms(),
        last_synced_at=None,
        base_text="",
        remote_revision=None,
    )


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and value > 0:
        return int(value)
    return None


def normalize_document(
    raw: dict[str, Any] | DocumentRecord,
    file_id: str,
    now: int | None = None,
) -> DocumentRecord:
    """Coerce a loosely-typed stored document into a valid record.

    Invalid timestamps are backfilled, non-string text fields become empty
    and the record is re-keyed to *file_id*.
    """
    if isinstance(raw, DocumentRecord):
        raw = raw.model_dump()
    current = now if now is not None else now_ms()

    text = raw.get("text")
    base_text = raw.get("base_text")
    revision = raw.get("remote_revision")

    return DocumentRecord(
        file_id=file_id,
        text=text if isinstance(text, str) else "",
        updated_at=_positive_int(raw.get("updated_at")) or current,
        last_synced_at=_positive_int(raw.get("last_synced_at")),
        base_text=base_text if isinstance(base_text, str) else "",
        remote_revision=revision if isinstance(revision, str) else None,
    )
