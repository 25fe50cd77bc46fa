"""Tests for conflict_show / conflict_resolve."""

from __future__ import annotations

import mcp.types as types
import pytest

from draftsync.mcp.tools import ALL_SPECS
from draftsync.mcp.tools.registry import ToolRegistry
from draftsync.sync.models import ConflictState

DOC_PATH = "/mini-author-doc-1.md"


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry(ALL_SPECS)


@pytest.fixture
def conflicted(orchestrator):
    """Orchestrator with a pending conflict on line 2 of doc-1."""
    orchestrator.edit("a\nLOCAL\nc")
    orchestrator.conflict = ConflictState(
        file_id="doc-1",
        file_name="Manuscript",
        base="a\nb\nc",
        local="a\nLOCAL\nc",
        remote="a\nREMOTE\nc",
        resolved="a\nLOCAL\nc",
        reason="Both sides changed line 2.",
    )
    return orchestrator


class TestConflictShow:
    async def test_no_conflict(self, registry, orchestrator):
        result = await registry.call_tool("conflict_show", {}, orchestrator)
        assert result.isError
        assert "not_found" in _text(result)

    async def test_hunks_view(self, registry, conflicted):
        result = await registry.call_tool("conflict_show", {}, conflicted)

        assert "[hunk-2]" in _text(result)
        assert result.structuredContent["change_hunk_count"] == 1
        assert result.structuredContent["reason"] == "Both sides changed line 2."

    async def test_side_by_side_view(self, registry, conflicted):
        result = await registry.call_tool(
            "conflict_show", {"view": "side_by_side"}, conflicted
        )

        statuses = [
            (row["local_status"], row["remote_status"])
            for row in result.structuredContent["rows"]
        ]
        assert ("equal", "equal") in statuses
        assert ("removed", "empty") in statuses
        assert ("empty", "added") in statuses
        lines = _text(result).splitlines()
        assert any(" - LOCAL" in line for line in lines)
        assert any(" + REMOTE" in line for line in lines)

    async def test_unknown_view(self, registry, conflicted):
        result = await registry.call_tool(
            "conflict_show", {"view": "wide"}, conflicted
        )
        assert result.isError
        assert "Unknown view 'wide'" in _text(result)


class TestConflictResolve:
    async def test_no_conflict(self, registry, orchestrator):
        result = await registry.call_tool(
            "conflict_resolve", {"choice": "local"}, orchestrator
        )
        assert result.isError

    async def test_explicit_text(self, registry, conflicted, remote):
        result = await registry.call_tool(
            "conflict_resolve", {"text": "hand merged"}, conflicted
        )

        assert result.structuredContent["status"] == "clean"
        assert remote.files[DOC_PATH][0] == "hand merged"
        assert conflicted.conflict is None
        assert conflicted.document.text == "hand merged"

    async def test_take_all_incoming(self, registry, conflicted, remote):
        await registry.call_tool(
            "conflict_resolve", {"choice": "incoming"}, conflicted
        )
        assert remote.files[DOC_PATH][0] == "a\nREMOTE\nc"

    async def test_per_hunk_choice(self, registry, conflicted, remote):
        await registry.call_tool(
            "conflict_resolve",
            {"choices": {"hunk-2": "both_local_first"}},
            conflicted,
        )
        assert remote.files[DOC_PATH][0] == "a\nLOCAL\nREMOTE\nc"

    async def test_per_hunk_overrides_default(self, registry, conflicted, remote):
        await registry.call_tool(
            "conflict_resolve",
            {"choice": "local", "choices": {"hunk-2": "both_incoming_first"}},
            conflicted,
        )
        assert remote.files[DOC_PATH][0] == "a\nREMOTE\nLOCAL\nc"

    async def test_unknown_hunk_id(self, registry, conflicted, remote):
        result = await registry.call_tool(
            "conflict_resolve", {"choices": {"hunk-9": "local"}}, conflicted
        )
        assert result.isError
        assert "Unknown hunk ids: hunk-9" in _text(result)
        assert conflicted.conflict is not None
        assert remote.uploads() == []

    async def test_invalid_choice(self, registry, conflicted):
        result = await registry.call_tool(
            "conflict_resolve", {"choice": "theirs"}, conflicted
        )
        assert result.isError
        assert "validation_error" in _text(result)

    async def test_offline_keeps_conflict(self, registry, conflicted, remote):
        await conflicted.set_online(False)

        result = await registry.call_tool(
            "conflict_resolve", {"choice": "incoming"}, conflicted
        )

        assert result.structuredContent["status"] == "skipped"
        assert conflicted.conflict.resolved == "a\nREMOTE\nc"
        assert remote.uploads() == []
