"""Multi-document catalog reconciliation.

The catalog (``FileMeta`` list) is synchronized independently of document
bodies.  The remote copy lives in one JSON manifest::

    {"version": 1, "files": [{"id": ..., "name": ..., "createdAt": ...}]}

Key design choices:

* **Validate, don't trust** -- every list coming from disk or the network
  goes through ``normalize_files``, which drops entries whose ``id`` is
  missing or unsafe as a file name, sanitizes names and backfills timestamps.
* **Union by id** -- ``merge_file_catalogs`` never drops a document.  Names
  are last-writer-wins on ``renamed_at``; ties go to the remote side.
* **Bootstrap placeholder** -- a fresh device starts with one empty
  ``"Manuscript"`` entry.  It is left out of the merge when the remote
  catalog already has documents, so it does not shadow them.
* **Remote ahead** -- ``detect_remote_ahead`` only flags files; it never
  triggers a sync by itself.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from ..core.clock import now_ms
from .documents import has_meaningful_content
from .errors import CatalogError
from .models import DocumentRecord, FileMeta, RemoteMetadata

logger = logging.getLogger(__name__)

CATALOG_VERSION = 1
DEFAULT_FILE_NAME = "Untitled"
DEFAULT_FIRST_FILE_NAME = "Manuscript"
MAX_FILE_NAME_LENGTH = 80
MAX_FILE_ID_LENGTH = 128
DEFAULT_CLOCK_SKEW_TOLERANCE_MS = 1000

_WHITESPACE_RUN = re.compile(r"\s+")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f]")
# Ids become local file names and Dropbox path segments.
FILE_ID_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")

# snake_case model field -> camelCase manifest key
_WIRE_KEYS = {
    "id": "id",
    "name": "name",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "renamed_at": "renamedAt",
}


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def sanitize_file_name(value: Any) -> str:
    """Collapse whitespace, strip control characters and clamp the length.

    Returns an empty string for non-string input; callers substitute
    ``DEFAULT_FILE_NAME``.
    """
    if not isinstance(value, str):
        return ""
    cleaned = _WHITESPACE_RUN.sub(" ", value).strip()
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    return cleaned[:MAX_FILE_NAME_LENGTH]


def _timestamp(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return int(value)


def _field(raw: Mapping[str, Any], name: str) -> Any:
    if name in raw:
        return raw[name]
    return raw.get(_WIRE_KEYS[name])


def normalize_file_meta(
    raw: Mapping[str, Any] | FileMeta, now: int
) -> FileMeta:
    """Coerce one loosely-typed catalog entry into a ``FileMeta``.

    The caller guarantees ``raw`` has an id accepted by ``is_safe_file_id``.
    """
    if isinstance(raw, FileMeta):
        raw = raw.model_dump()

    created_at = _timestamp(_field(raw, "created_at")) or now
    updated_at = _timestamp(_field(raw, "updated_at")) or created_at
    renamed_at = _timestamp(_field(raw, "renamed_at")) or updated_at

    return FileMeta(
        id=raw["id"],
        name=sanitize_file_name(_field(raw, "name")) or DEFAULT_FILE_NAME,
        created_at=created_at,
        updated_at=max(updated_at, renamed_at),
        renamed_at=max(renamed_at, created_at),
    )


def is_safe_file_id(value: Any) -> bool:
    """True when *value* can be used as a file name and Dropbox path segment."""
    return (
        isinstance(value, str)
        and len(value) <= MAX_FILE_ID_LENGTH
        and ".." not in value
        and FILE_ID_PATTERN.fullmatch(value) is not None
    )


def _has_valid_id(raw: Any) -> bool:
    if isinstance(raw, FileMeta):
        return is_safe_file_id(raw.id)
    if not isinstance(raw, Mapping):
        return False
    return is_safe_file_id(raw.get("id"))


def sort_files(files: Iterable[FileMeta]) -> list[FileMeta]:
    """Sort by creation time, then case-insensitive name."""
    return sorted(files, key=lambda f: (f.created_at, f.name.casefold()))


def normalize_files(
    files: Iterable[Any], now: int | None = None
) -> list[FileMeta]:
    """Validate, dedupe and sort a catalog.

    Malformed entries are dropped.  When an id repeats, the entry with the
    later ``renamed_at`` (then ``updated_at``) wins.
    """
    current = now if now is not None else now_ms()
    deduped: dict[str, FileMeta] = {}

    for raw in files:
        if not _has_valid_id(raw):
            logger.debug("Dropping malformed catalog entry: %r", raw)
            continue
        meta = normalize_file_meta(raw, current)
        existing = deduped.get(meta.id)
        if (
            existing is None
            or meta.renamed_at > existing.renamed_at
            or (
                meta.renamed_at == existing.renamed_at
                and meta.updated_at >= existing.updated_at
            )
        ):
            deduped[meta.id] = meta

    return sort_files(deduped.values())


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def merge_file_catalogs(
    local_files: Iterable[Any],
    remote_files: Iterable[Any],
    now: int | None = None,
) -> list[FileMeta]:
    """Union the local and remote catalogs by id.

    For ids present on both sides the local record is kept, except that
    the remote ``name`` wins when ``remote.renamed_at >= local.renamed_at``.
    ``created_at`` takes the minimum, ``updated_at``/``renamed_at`` the
    maximum.  Output order is first-seen order, local entries first.
    """
    current = now if now is not None else now_ms()
    local = normalize_files(local_files, current)
    remote = normalize_files(remote_files, current)

    merged: dict[str, FileMeta] = {f.id: f for f in local}
    for remote_file in remote:
        existing = merged.get(remote_file.id)
        if existing is None:
            merged[remote_file.id] = remote_file
            continue

        remote_rename_wins = remote_file.renamed_at >= existing.renamed_at
        merged[remote_file.id] = existing.model_copy(
            update={
                "name": remote_file.name
                if remote_rename_wins
                else existing.name,
                "created_at": min(
                    existing.created_at, remote_file.created_at
                ),
                "updated_at": max(
                    existing.updated_at, remote_file.updated_at
                ),
                "renamed_at": max(
                    existing.renamed_at, remote_file.renamed_at
                ),
            }
        )

    order: dict[str, int] = {}
    for f in [*local, *remote]:
        order.setdefault(f.id, len(order))

    return sorted(
        sort_files(merged.values()),
        key=lambda f: order.get(f.id, len(order)),
    )


def is_bootstrap_placeholder(
    meta: FileMeta, document: DocumentRecord | None
) -> bool:
    """Return ``True`` for the default, empty, never-synced first document."""
    if meta.name != DEFAULT_FIRST_FILE_NAME:
        return False
    if document is None:
        return True
    return (
        not has_meaningful_content(document.text) and document.is_first_sync
    )


def select_local_files_for_merge(
    local_files: Sequence[FileMeta],
    remote_files: Sequence[FileMeta],
    lookup_document: Callable[[str], DocumentRecord | None],
) -> list[FileMeta]:
    """Drop the bootstrap placeholder when a remote catalog exists.

    Only applies when the local catalog has exactly one entry, the remote
    catalog is non-empty and does not contain that entry.
    """
    if len(local_files) != 1 or not remote_files:
        return list(local_files)

    candidate = local_files[0]
    if any(f.id == candidate.id for f in remote_files):
        return list(local_files)

    if is_bootstrap_placeholder(candidate, lookup_document(candidate.id)):
        logger.info(
            "Dropping bootstrap placeholder %s in favour of remote catalog",
            candidate.id,
        )
        return []
    return list(local_files)


# ---------------------------------------------------------------------------
# Manifest encoding
# ---------------------------------------------------------------------------


def decode_remote_files_index(raw: str) -> list[FileMeta]:
    """Decode a remote manifest.

    Accepts ``{"version": 1, "files": [...]}`` or a bare list.

    Raises:
        CatalogError: If *raw* is not valid JSON.
    """
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"Malformed catalog manifest: {exc}") from exc

    if isinstance(parsed, list):
        files = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("files"), list):
        files = parsed["files"]
    else:
        files = []
    return normalize_files(files)


def parse_remote_files_index(raw: str) -> list[FileMeta]:
    """Decode a remote manifest, degrading to an empty catalog on error."""
    try:
        return decode_remote_files_index(raw)
    except CatalogError as exc:
        logger.warning("%s -- treating remote catalog as empty", exc)
        return []


def serialize_remote_files_index(files: Iterable[Any]) -> str:
    """Encode a catalog as the remote manifest (pretty JSON, trailing LF)."""
    payload = {
        "version": CATALOG_VERSION,
        "files": [
            {
                wire: getattr(meta, name)
                for name, wire in _WIRE_KEYS.items()
            }
            for meta in normalize_files(files)
        ],
    }
    return json.dumps(payload, indent=2) + "\n"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def detect_remote_ahead(
    metadata: RemoteMetadata | None,
    document: DocumentRecord | None,
    tolerance_ms: int = DEFAULT_CLOCK_SKEW_TOLERANCE_MS,
) -> int | None:
    """Return the remote modification time if the remote has unseen changes.

    A file is "ahead" when the server modification time is later than the
    local ``last_synced_at`` plus *tolerance_ms*, or when both revision
    tokens are known and differ.

    Returns:
        The server modification timestamp, or ``None``.
    """
    if metadata is None or not metadata.server_modified_at:
        return None

    last_synced = (document.last_synced_at if document else None) or 0
    ahead_by_time = metadata.server_modified_at > last_synced + tolerance_ms
    ahead_by_revision = (
        bool(metadata.revision)
        and document is not None
        and bool(document.remote_revision)
        and metadata.revision != document.remote_revision
    )

    if ahead_by_time or ahead_by_revision:
        return metadata.server_modified_at
    return None


def resolve_active_file_id(
    desired: str | None, files: Sequence[FileMeta]
) -> str | None:
    """Keep *desired* if it is in the catalog, else fall back to the first file."""
    if not files:
        return None
    if desired and any(f.id == desired for f in files):
        return desired
    return files[0].id


def find_file(files: Iterable[FileMeta], file_id: str) -> FileMeta | None:
    return next((f for f in files if f.id == file_id), None)


def file_lists_equal(
    left: Sequence[FileMeta], right: Sequence[FileMeta]
) -> bool:
    """Field-wise, order-sensitive equality of two catalogs."""
    return len(left) == len(right) and all(
        a == b for a, b in zip(left, right)
    )
