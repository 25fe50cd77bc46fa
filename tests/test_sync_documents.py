"""Tests for sync/documents.py."""

from draftsync.sync.documents import (
    create_empty_document,
    has_meaningful_content,
    meaningful_text,
    normalize_document,
)
from draftsync.sync.models import DocumentRecord

NOW = 1_700_000_000_000


class TestMeaningfulContent:
    def test_plain_text(self):
        assert has_meaningful_content("Once upon a time")

    def test_empty_and_whitespace(self):
        assert not has_meaningful_content("")
        assert not has_meaningful_content(" \n\t\r\n")

    def test_bare_headings_and_page_breaks(self):
        assert not has_meaningful_content("#\n## \n<!-- page-break -->")

    def test_heading_with_text(self):
        assert has_meaningful_content("# Chapter one")

    def test_meaningful_text(self):
        assert meaningful_text("# ") == ""
        assert meaningful_text("words") == "words"


class TestDocumentRecords:
    def test_create_empty_document(self):
        doc = create_empty_document("a", NOW)
        assert doc.text == ""
        assert doc.updated_at == NOW
        assert doc.is_first_sync
        assert not doc.has_sync_state

    def test_sync_state_flags(self):
        doc = DocumentRecord(file_id="a", updated_at=NOW, remote_revision="r1")
        assert doc.has_sync_state
        assert not doc.is_first_sync

    def test_normalize_backfills_and_rekeys(self):
        doc = normalize_document(
            {
                "file_id": "other",
                "text": 5,
                "updated_at": "yesterday",
                "last_synced_at": -1,
                "base_text": "base",
                "remote_revision": 7,
            },
            "a",
            now=NOW,
        )
        assert doc.file_id == "a"
        assert doc.text == ""
        assert doc.updated_at == NOW
        assert doc.last_synced_at is None
        assert doc.base_text == "base"
        assert doc.remote_revision is None

    def test_normalize_keeps_valid_record(self):
        original = DocumentRecord(
            file_id="a",
            text="t",
            updated_at=NOW,
            last_synced_at=NOW,
            base_text="t",
            remote_revision="r",
        )
        assert normalize_document(original, "a", now=NOW + 5) == original
