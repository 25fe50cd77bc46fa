"""Tests for sync reporter formatting functions.

Covers:
- format_sync_result with clean, conflict and connect results
- format_status and format_file_list text blocks
- format_conflict diff, hunk listing and preview truncation
- result_to_json / conflict_to_json / status_to_json structure
"""

from __future__ import annotations

from draftsync.sync.models import (
    ConflictState,
    EngineStatus,
    FileMeta,
    SyncResult,
    SyncStatus,
)
from draftsync.sync.reporter import (
    conflict_to_json,
    format_conflict,
    format_file_list,
    format_status,
    format_sync_result,
    result_to_json,
    status_to_json,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _conflict(**overrides) -> ConflictState:
    fields = {
        "file_id": "doc-1",
        "file_name": "Chapter 1",
        "base": "a\nb\nc",
        "local": "a\nLOCAL\nc",
        "remote": "a\nREMOTE\nc",
        "resolved": "a\nLOCAL\nc",
        "reason": "Both sides changed line 2.",
    }
    fields.update(overrides)
    return ConflictState(**fields)


def _meta(file_id: str, name: str) -> FileMeta:
    return FileMeta(
        id=file_id, name=name, created_at=1, updated_at=1, renamed_at=1
    )


# ---------------------------------------------------------------------------
# Text output
# ---------------------------------------------------------------------------


class TestFormatSyncResult:
    def test_clean_upload(self):
        result = SyncResult(
            status=SyncStatus.CLEAN, notice="Synced.", uploaded=True
        )
        assert format_sync_result(result) == (
            "Synced.\nChanges were written to Dropbox."
        )

    def test_skipped_is_just_the_notice(self):
        result = SyncResult(status=SyncStatus.SKIPPED, notice="Offline.")
        assert format_sync_result(result) == "Offline."

    def test_authorize_url_included(self):
        result = SyncResult(
            status=SyncStatus.CLEAN,
            notice="Open the URL.",
            authorize_url="https://www.dropbox.com/oauth2/authorize?x=1",
        )
        assert "https://www.dropbox.com/oauth2/authorize?x=1" in (
            format_sync_result(result)
        )

    def test_conflict_appends_review_block(self):
        result = SyncResult(
            status=SyncStatus.CONFLICT,
            notice="Conflict found.",
            conflict=_conflict(),
        )
        text = format_sync_result(result)
        assert text.startswith("Conflict found.")
        assert 'Conflict in "Chapter 1" [doc-1]' in text


class TestFormatConflict:
    def test_sections(self):
        text = format_conflict(_conflict())
        assert "Reason: Both sides changed line 2." in text
        assert "--- dropbox" in text
        assert "+++ local" in text
        assert "Change hunks (1):" in text
        assert "[hunk-2] local line 2, Dropbox line 2" in text
        assert "  - REMOTE" in text
        assert "  + LOCAL" in text
        assert "--- Current resolution preview ---" in text

    def test_identical_sides(self):
        text = format_conflict(_conflict(local="same", remote="same"))
        assert "(no textual differences)" in text
        assert "Change hunks" not in text

    def test_long_preview_truncated(self):
        resolved = "\n".join(f"line {i}" for i in range(25))
        text = format_conflict(_conflict(resolved=resolved))
        assert "  line 19" in text
        assert "  line 20" not in text
        assert "... (5 more lines)" in text


class TestFormatStatus:
    def test_connected_with_conflict(self):
        status = EngineStatus(
            state=SyncStatus.CONFLICT,
            connected=True,
            online=True,
            active_file_id="doc-1",
            active_file_name="Chapter 1",
            last_synced_at=1_700_000_000_000,
            has_conflict=True,
            file_count=2,
            notice="Conflict found.",
        )
        text = format_status(status)
        assert "State: conflict" in text
        assert "Dropbox: connected" in text
        assert "Active: Chapter 1 [doc-1]" in text
        assert "Last synced: 2023-11-14 22:13:20 UTC" in text
        assert "A conflict is waiting to be resolved." in text
        assert "Last notice: Conflict found." in text

    def test_never_synced_offline(self):
        status = EngineStatus(
            state=SyncStatus.IDLE, connected=False, online=False
        )
        text = format_status(status)
        assert "Dropbox: not connected" in text
        assert "Network: offline" in text
        assert "Active: (none)" in text
        assert "Last synced: never" in text

    def test_remote_ahead_line(self):
        status = EngineStatus(
            state=SyncStatus.IDLE,
            connected=True,
            online=True,
            remote_ahead_at=1_700_000_000_000,
        )
        assert "Dropbox has newer changes" in format_status(status)


class TestFormatFileList:
    def test_empty(self):
        assert format_file_list([]) == "No documents."

    def test_marks_active_and_remote_ahead(self):
        files = [_meta("a", "Alpha"), _meta("b", "Beta")]
        text = format_file_list(files, active_file_id="b", remote_ahead={"a": 5})
        assert text.splitlines() == [
            "Documents (2):",
            "  Alpha [a] (newer in Dropbox)",
            "* Beta [b]",
        ]


# ---------------------------------------------------------------------------
# JSON output
# ---------------------------------------------------------------------------


class TestJsonOutput:
    def test_conflict_to_json(self):
        data = conflict_to_json(_conflict())
        assert data["file_id"] == "doc-1"
        assert data["change_hunk_count"] == 1
        assert [h["kind"] for h in data["hunks"]] == ["equal", "change", "equal"]
        change = data["hunks"][1]
        assert change["local_lines"] == ["LOCAL"]
        assert change["incoming_lines"] == ["REMOTE"]

    def test_result_to_json_minimal(self):
        data = result_to_json(
            SyncResult(status=SyncStatus.SKIPPED, notice="Offline.")
        )
        assert data == {
            "status": "skipped",
            "ok": False,
            "notice": "Offline.",
            "file_id": None,
            "uploaded": False,
        }

    def test_result_to_json_full(self):
        data = result_to_json(
            SyncResult(
                status=SyncStatus.CONFLICT,
                notice="Conflict.",
                files=[_meta("a", "Alpha")],
                conflict=_conflict(),
                authorize_url="https://x",
            )
        )
        assert data["files"][0]["name"] == "Alpha"
        assert data["conflict"]["file_name"] == "Chapter 1"
        assert data["authorize_url"] == "https://x"

    def test_status_to_json_state_is_string(self):
        data = status_to_json(
            EngineStatus(state=SyncStatus.SYNCING, connected=True, online=True)
        )
        assert data["state"] == "syncing"
        assert data["connected"] is True
